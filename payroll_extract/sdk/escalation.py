"""Per-page escalation across extraction methods.

    NOT_STARTED -> REGEX_DONE -> LLM_ATTEMPTED -> VISION_ATTEMPTED -> RESOLVED

1. Pattern extraction always runs; its record is the regex baseline.
2. One language-model attempt. Success makes it the candidate (llm);
   failure, timeout or no service keeps the baseline (regex). A candidate
   missing federal fields that the baseline has gives way to the baseline.
3. A federally incomplete candidate gets one vision attempt, adopted only
   if federally complete.
4. A candidate without state income for a taxed jurisdiction is
   back-filled from the baseline when the baseline has a positive value;
   otherwise a second vision attempt supplies the jurisdiction
   fields. Any back-fill makes the method hybrid.

Every decision is logged and, when an on_event callback is given, passed
to it as on_event(name, **details).
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .completeness import (
    is_federal_complete,
    is_jurisdiction_complete,
    missing_federal_keys,
    state_income_value,
)
from .config import ExtractionSettings
from .fields import FieldExtractor
from .jurisdiction import detect_jurisdiction
from .merge import merge_records
from .schemas import ExtractionMethod, PayrollRecord
from .services import TextExtractionService, VisionExtractionService

logger = logging.getLogger(__name__)

EventCallback = Callable[..., None]


class EscalationState(str, Enum):
    NOT_STARTED = "not_started"
    REGEX_DONE = "regex_done"
    LLM_ATTEMPTED = "llm_attempted"
    VISION_ATTEMPTED = "vision_attempted"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class ControllerEvent:
    name: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Resolution:
    """Terminal output of the controller for one page."""

    record: PayrollRecord
    method: ExtractionMethod
    vision_attempts: int = 0
    events: tuple = ()
    state: EscalationState = EscalationState.RESOLVED


class EscalationController:
    """Resolves one page of text (and optional page image) to a record.

    Holds no per-page state between calls; one controller may serve every
    page of a document, or several documents in turn.
    """

    def __init__(
        self,
        text_service: Optional[TextExtractionService] = None,
        vision_service: Optional[VisionExtractionService] = None,
        settings: Optional[ExtractionSettings] = None,
        on_event: Optional[EventCallback] = None,
    ):
        self.text_service = text_service
        self.vision_service = vision_service
        self.settings = settings or ExtractionSettings()
        self.on_event = on_event

    def _emit(self, events: List[ControllerEvent], name: str, level: int = logging.DEBUG, **details) -> None:
        events.append(ControllerEvent(name, details))
        logger.log(level, f"{name} {details}" if details else name)
        if self.on_event is not None:
            self.on_event(name, **details)

    def _vision(self, events: List[ControllerEvent], page_image: Path, purpose: str) -> Optional[PayrollRecord]:
        try:
            record = self.vision_service.extract(page_image)
        except Exception as e:
            self._emit(events, "vision_failed", logging.WARNING, purpose=purpose, error=str(e))
            return None
        self._emit(events, "vision_returned", purpose=purpose)
        return record

    def resolve(
        self,
        page_text: str,
        page_image: Optional[Path] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Resolution:
        """Run the escalation for one page.

        If `cancel` is set between steps, the current candidate is resolved
        without further external calls.
        """
        events: List[ControllerEvent] = []
        state = EscalationState.NOT_STARTED

        def cancelled() -> bool:
            if cancel is not None and cancel.is_set():
                self._emit(events, "cancelled", state=state.value)
                return True
            return False

        baseline = FieldExtractor(self.settings).extract(page_text)
        state = EscalationState.REGEX_DONE
        baseline_federal = is_federal_complete(baseline)
        self._emit(
            events, "regex_done",
            federal_complete=baseline_federal,
            missing=missing_federal_keys(baseline),
        )

        candidate, method = baseline, ExtractionMethod.REGEX

        if self.text_service is None:
            self._emit(events, "llm_skipped")
        elif not cancelled():
            try:
                llm_record = self.text_service.extract(page_text)
            except Exception as e:
                self._emit(events, "llm_failed", logging.WARNING, error=str(e))
            else:
                if baseline_federal and not is_federal_complete(llm_record):
                    self._emit(events, "llm_rejected", missing=missing_federal_keys(llm_record))
                else:
                    candidate, method = llm_record, ExtractionMethod.LLM
                    self._emit(events, "llm_adopted")
        state = EscalationState.LLM_ATTEMPTED

        vision_attempts = 0
        can_vision = self.vision_service is not None and page_image is not None

        if not is_federal_complete(candidate):
            if not can_vision:
                self._emit(events, "vision_unavailable", purpose="federal")
            elif not cancelled():
                vision_attempts += 1
                vision_record = self._vision(events, page_image, "federal")
                state = EscalationState.VISION_ATTEMPTED
                if vision_record is not None and is_federal_complete(vision_record):
                    candidate, method = vision_record, ExtractionMethod.VISION
                    self._emit(events, "vision_adopted", level=logging.INFO)
                elif vision_record is not None:
                    self._emit(events, "vision_incomplete", missing=missing_federal_keys(vision_record))

        if not is_jurisdiction_complete(candidate):
            jurisdiction = detect_jurisdiction(candidate)
            baseline_value = state_income_value(baseline)

            if baseline_value is not None and baseline_value > 0:
                candidate, changed = merge_records(candidate, baseline)
                if changed:
                    method = ExtractionMethod.HYBRID
                self._emit(events, "hybrid_from_regex", jurisdiction=jurisdiction, changed=changed)

            # A missing or zero baseline has nothing to contribute.
            elif not can_vision:
                self._emit(events, "vision_unavailable", purpose="jurisdiction")
            elif not cancelled():
                vision_attempts += 1
                vision_record = self._vision(events, page_image, "jurisdiction")
                state = EscalationState.VISION_ATTEMPTED
                if vision_record is not None:
                    candidate, changed = merge_records(candidate, vision_record)
                    if changed:
                        method = ExtractionMethod.HYBRID
                    self._emit(events, "hybrid_from_vision", jurisdiction=jurisdiction, changed=changed)

        state = EscalationState.RESOLVED
        self._emit(events, "resolved", level=logging.INFO, method=method.value, vision_attempts=vision_attempts)
        return Resolution(
            record=candidate,
            method=method,
            vision_attempts=vision_attempts,
            events=tuple(events),
            state=state,
        )
