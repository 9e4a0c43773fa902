"""Request-to-result pipeline for ingredient analysis.

Runs the steps of one analysis in order: OCR, prompt construction, the
completion call, reply sanitizing, schema validation and optional
persistence. Components are created once per process and injected.
"""

from dataclasses import dataclass, field
from typing import Any

from src.analysis.completion import CompletionClient
from src.analysis.prompts import build_prompt
from src.analysis.sanitizer import parse_model_reply
from src.analysis.validator import validate_result
from src.errors import MissingImageError, PersistenceError
from src.ocr.tesseract_engine import TesseractEngine
from src.storage.mongo_store import AnalysisRecord, AnalysisStore, Location, make_image_url
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CallerIdentity:
    """Authenticated caller. Both fields are ``None`` for anonymous calls."""

    uid: str | None = None
    phone_number: str | None = None


@dataclass
class AnalysisRequest:
    """Inputs of one analysis."""

    image: bytes
    caller: CallerIdentity = field(default_factory=CallerIdentity)
    location: Location = field(default_factory=Location)


@dataclass
class AnalysisOutcome:
    """What one analysis produced."""

    result: dict[str, Any]
    ocr_text: str
    record_id: str | None = None


class AnalysisPipeline:
    """Turns an uploaded label photo into a validated analysis result.

    Args:
        ocr_engine: OCR engine used on the uploaded image.
        completion: Chat-completion client.
        store: Analysis store. Results are not persisted when ``None``.
        schema_version: Result schema requested from the model.
        failure_policy: ``"fail"`` to fail the request when persistence
            fails, ``"log"`` to log the error and still return the result.
    """

    def __init__(
        self,
        ocr_engine: TesseractEngine,
        completion: CompletionClient,
        store: AnalysisStore | None = None,
        schema_version: str = "v2",
        failure_policy: str = "fail",
    ) -> None:
        self.ocr_engine = ocr_engine
        self.completion = completion
        self.store = store
        self.schema_version = schema_version
        self.failure_policy = failure_policy

    def analyze_text(self, ocr_text: str) -> dict[str, Any]:
        """Ask the model about OCR text and return the validated result."""
        prompt = build_prompt(ocr_text, self.schema_version)
        reply = self.completion.complete(prompt)
        parsed = parse_model_reply(reply)
        return validate_result(parsed, self.schema_version)

    def run(self, request: AnalysisRequest) -> AnalysisOutcome:
        """Run the full analysis for one request.

        Raises:
            ScanError: Subclass describing the first step that failed.
        """
        if not request.image:
            raise MissingImageError()

        ocr = self.ocr_engine.extract_text(request.image)
        if not ocr.text:
            logger.warning("OCR found no text; sending an empty ingredient list")

        result = self.analyze_text(ocr.text)
        outcome = AnalysisOutcome(result=result, ocr_text=ocr.text)

        if self.store is not None:
            outcome.record_id = self._persist(request, result)

        return outcome

    def _persist(self, request: AnalysisRequest, result: dict[str, Any]) -> str | None:
        record = AnalysisRecord(
            uid=request.caller.uid,
            phone=request.caller.phone_number,
            image_url=make_image_url(),
            location=request.location,
            schema_version=self.schema_version,
            result=result,
        )
        try:
            return self.store.save(record)
        except PersistenceError:
            if self.failure_policy == "log":
                logger.warning("Returning analysis that could not be stored")
                return None
            raise
