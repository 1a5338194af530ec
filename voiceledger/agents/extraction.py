"""
Extraction Agent

Turns a transcript into a canonical record by asking an LLM for the
structured fields and running the result through the normalization engine.

CRITICAL BOUNDARIES:
- The LLM is a TRANSLATOR, not an ORACLE. It maps spoken words to field
  names; it never decides whether the record is acceptable.
- Its output is untrusted. Anything that is not a JSON object is a parse
  failure, retried with a simpler prompt.
- After the retries are used up the transcript still yields a minimal
  record so the user gets an explanation, never a crash.
- Service outages are different from bad output: they are retried with
  backoff and then surface as ExtractionServiceError. They never produce
  a fallback record.
"""

import json
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Optional, Union
from uuid import UUID

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from voiceledger.audit import AuditLogger
from voiceledger.config import GeminiSettings, ProcessingPolicy, get_settings
from voiceledger.models.record import (
    NOT_AVAILABLE,
    CanonicalRecord,
    RecordKind,
    ValidityReport,
)
from voiceledger.normalization import tables
from voiceledger.normalization.engine import NormalizationEngine


logger = structlog.get_logger(__name__)


SYSTEM_PROMPT = (
    "Sei un assistente contabile che estrae dati strutturati da testi parlati "
    "trascritti. Rispondi sempre e solo con un oggetto JSON."
)

DETAILED_TEMPLATE = """Hai ricevuto questo testo trascritto da un messaggio vocale:

"{transcript}"

La data di oggi è {today}.

Estrai un oggetto JSON con questi campi (stringa vuota se non presenti):
- tipo: "spesa" se l'utente ha pagato qualcosa, "entrata" se ha ricevuto denaro
- importo: solo il numero, con la virgola o il punto per i decimali
- iva: importo dell'IVA, se citato
- valuta: codice ISO (EUR se non indicato)
- data_fattura: data della spesa o della fattura (YYYY-MM-DD, oppure le parole usate, es. "ieri")
- data_entrata: data dell'incasso, solo per le entrate
- azienda: fornitore o luogo citato, solo per le spese
- numero_fattura: numero del documento, solo per le spese
- tipo_documento: fattura, ricevuta, scontrino, bolla...
- metodo_pagamento: contanti, carta, bancomat, bonifico, assegno...
- tipo_pagamento: tempistica del pagamento (immediato, 30 giorni, fine mese, rate...)
- banca: se citata
- stato: stringa vuota se non citato
- descrizione: breve descrizione di cosa si tratta

Non inventare valori che non sono nel testo.
Rispondi solo con il JSON richiesto."""

SIMPLIFIED_TEMPLATE = """Testo: "{transcript}"
Oggi: {today}

Rispondi SOLO con un oggetto JSON con le chiavi tipo, importo, valuta,
data_fattura, azienda, descrizione. Nessun altro testo."""

TEMPLATES = {
    "detailed": DETAILED_TEMPLATE,
    "simplified": SIMPLIFIED_TEMPLATE,
}

FALLBACK_OPTIONAL_FIELDS = (
    tables.COUNTERPARTY,
    tables.DOCUMENT_REF,
    tables.DOCUMENT_TYPE,
    tables.PAYMENT_METHOD,
    tables.PAYMENT_TERMS,
    tables.BANK,
    tables.STATUS,
)


class ExtractionError(Exception):
    """Base exception for extraction errors."""
    pass


class ExtractionServiceError(ExtractionError):
    """The LLM service failed; safe to retry."""
    pass


class ExtractionResult(BaseModel):
    """What the extraction produced and how it got there."""

    normalized_fields: dict[str, Any]
    kind: RecordKind
    report: ValidityReport
    record: Optional[CanonicalRecord] = None
    attempts: int = Field(ge=0)
    used_fallback: bool = False
    raw_responses: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.record is not None


def parse_llm_json(text: Any) -> dict[str, Any]:
    """
    Pull a JSON object out of an LLM reply.

    Code fences and prose around the object are ignored, including prose
    after the object that itself contains braces. A list is accepted when
    it holds an object (the first one wins).

    Raises:
        ValueError: If no JSON object can be recovered
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty response")

    start = text.find("{")
    if start < 0:
        raise ValueError("No JSON object in response")

    decoder = json.JSONDecoder()
    list_start = text.find("[")
    if 0 <= list_start < start:
        try:
            items, _ = decoder.raw_decode(text, list_start)
        except ValueError:
            items = None
        if isinstance(items, list):
            for item in items:
                if isinstance(item, dict):
                    return item

    while True:
        try:
            data, _ = decoder.raw_decode(text, start)
            break
        except ValueError:
            start = text.find("{", start + 1)
            if start < 0:
                raise
    if not isinstance(data, dict):
        raise ValueError("Response is not a JSON object")
    return data


class ExtractionClient(ABC):
    """LLM collaborator: one prompt in, raw text out."""

    @abstractmethod
    async def complete(self, system_prompt: str, prompt: str) -> str:
        """
        Raises:
            ExtractionServiceError: If the service fails (retryable)
        """
        pass


class GeminiExtractionClient(ExtractionClient):
    """ExtractionClient backed by google-generativeai."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._models: dict[str, genai.GenerativeModel] = {}
        genai.configure(api_key=self._settings.api_key)

    def _model_for(self, system_prompt: str) -> genai.GenerativeModel:
        if system_prompt not in self._models:
            self._models[system_prompt] = genai.GenerativeModel(
                model_name=self._settings.model_name,
                system_instruction=system_prompt,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                }
            )
        return self._models[system_prompt]

    async def complete(self, system_prompt: str, prompt: str) -> str:
        try:
            response = await self._model_for(system_prompt).generate_content_async(prompt)
        except Exception as e:
            raise ExtractionServiceError(f"Extraction request failed: {e}") from e
        try:
            return response.text.strip()
        except ValueError:
            # No usable candidate; treated as unparseable output.
            return ""


class ExtractionOrchestrator:
    """
    Drives the template ladder and hands the result to the engine.

    The ladder is the detailed template once, then the simplified template
    `policy.extraction_retries` times.
    """

    def __init__(
        self,
        client: ExtractionClient,
        engine: Optional[NormalizationEngine] = None,
        policy: Optional[ProcessingPolicy] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._policy = policy or (engine.policy if engine else get_settings().policy)
        self._engine = engine or NormalizationEngine(self._policy)
        self._audit = audit_logger or AuditLogger()

    def template_ladder(self) -> list[str]:
        return ["detailed"] + ["simplified"] * self._policy.extraction_retries

    async def _complete(self, prompt: str) -> str:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ExtractionServiceError),
            stop=stop_after_attempt(self._policy.transient_retry_attempts),
            wait=wait_exponential(multiplier=self._policy.retry_wait_multiplier, max=10),
            reraise=True,
        ):
            with attempt:
                return await self._client.complete(SYSTEM_PROMPT, prompt)

    def fallback_fields(self, transcript: str) -> dict[str, Any]:
        """Minimal record built from the transcript alone."""
        kind = self._engine.classifier.infer_from_text(transcript)
        fields: dict[str, Any] = {
            tables.KIND: kind.value,
            tables.AMOUNT: "0",
            tables.DESCRIPTION: transcript,
        }
        for name in FALLBACK_OPTIONAL_FIELDS:
            fields[name] = NOT_AVAILABLE
        return fields

    async def extract(
        self,
        transcript: str,
        now: Union[datetime, date],
        owner_id: str,
        tenant_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ExtractionResult:
        """
        Extract, normalize, classify and validate one transcript.

        Raises:
            ExtractionServiceError: If the service stays unavailable
        """
        today = (now.date() if isinstance(now, datetime) else now).isoformat()
        raw_responses: list[str] = []
        fields: Optional[dict[str, Any]] = None
        attempts = 0

        ladder = self.template_ladder()
        if not transcript.strip():
            logger.info("extraction_skipped_empty_transcript", correlation_id=str(correlation_id))
            ladder = []

        for template_name in ladder:
            attempts += 1
            prompt = TEMPLATES[template_name].format(transcript=transcript, today=today)
            response = await self._complete(prompt)
            raw_responses.append(response)
            try:
                fields = parse_llm_json(response)
                break
            except ValueError as e:
                logger.warning(
                    "extraction_attempt_failed",
                    attempt=attempts,
                    template=template_name,
                    error=str(e),
                )
                await self._audit.log_extraction_attempt_failed(
                    attempt=attempts,
                    template=template_name,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

        used_fallback = fields is None
        if used_fallback:
            fields = self.fallback_fields(transcript)
            await self._audit.log_extraction_fallback_used(
                attempts=attempts,
                kind=fields[tables.KIND],
                correlation_id=correlation_id,
            )

        outcome = self._engine.process(
            fields, now, owner_id=owner_id, tenant_id=tenant_id, transcript=transcript
        )
        await self._audit.log_extraction_completed(
            kind=outcome.kind.value,
            attempts=attempts,
            valid=outcome.is_valid,
            correlation_id=correlation_id,
        )

        return ExtractionResult(
            normalized_fields=outcome.normalized_fields,
            kind=outcome.kind,
            report=outcome.report,
            record=outcome.record,
            attempts=attempts,
            used_fallback=used_fallback,
            raw_responses=raw_responses,
        )
