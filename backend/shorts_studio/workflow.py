"""Per-idea script workflow: draft -> revise* -> finalize -> SEO."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterator, List, Optional

from .errors import FormatError, StudioError, WorkflowStateError
from .models import Conversation, HistoryItem, Idea, NarrationStyle, SeoContent
from .orchestrator import GenerationOrchestrator
from .parsing import parse_narration_styles, split_script

logger = logging.getLogger(__name__)

MIN_SCENE_SECONDS = 5
MAX_SCENE_SECONDS = 60


class WorkflowState(str, Enum):
    IDLE = "idle"
    DRAFTING = "drafting"
    DRAFT_READY = "draft_ready"
    REVISING = "revising"
    FINALIZING = "finalizing"
    FINALIZED = "finalized"
    GENERATING_SEO = "generating_seo"
    COMPLETE = "complete"
    ERROR = "error"


STABLE_STATES = {
    WorkflowState.IDLE,
    WorkflowState.DRAFT_READY,
    WorkflowState.FINALIZED,
    WorkflowState.COMPLETE,
}


class ScriptHistory:
    """Append-only log of completed workflows."""

    def __init__(self) -> None:
        self._items: List[HistoryItem] = []

    def append(self, item: HistoryItem) -> HistoryItem:
        self._items.append(item)
        return item

    def __iter__(self):
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def latest_first(self) -> List[HistoryItem]:
        return list(reversed(self._items))


def validate_finalize_inputs(max_scene_duration: Any, scene_count: Any = None) -> tuple[float, Optional[int]]:
    """Check the finalize form values; returns (seconds, scene count or None)."""
    try:
        seconds = float(max_scene_duration)
    except (TypeError, ValueError) as exc:
        raise ValueError("Max scene duration must be a number of seconds.") from exc
    if not MIN_SCENE_SECONDS <= seconds <= MAX_SCENE_SECONDS:
        raise ValueError(
            f"Max scene duration must be between {MIN_SCENE_SECONDS} and {MAX_SCENE_SECONDS} seconds."
        )

    count: Optional[int] = None
    if scene_count not in (None, ""):
        try:
            count = int(str(scene_count).strip())
        except ValueError as exc:
            raise ValueError("Number of scenes must be a whole number.") from exc
        if count < 1:
            raise ValueError("Number of scenes must be positive.")
    return int(seconds) if seconds.is_integer() else seconds, count


class ScriptWorkflow:
    """State machine for one idea.

    Only one orchestrator call is outstanding at a time: every action is
    rejected unless the workflow sits in a state that allows it.
    """

    def __init__(
        self,
        idea: Idea,
        orchestrator: GenerationOrchestrator,
        history: Optional[ScriptHistory] = None,
    ):
        self.idea = idea
        self.orchestrator = orchestrator
        self.history = history if history is not None else ScriptHistory()
        self.state = WorkflowState.IDLE
        self.conversation: Optional[Conversation] = None
        self.draft = ""
        self.narration_styles: List[NarrationStyle] = []
        self.selected_style: Optional[str] = None
        self.final_script: Optional[str] = None
        self.seo: Optional[SeoContent] = None
        self.error: Optional[StudioError] = None
        self._stable = WorkflowState.IDLE
        self._draft_count = 0

    @property
    def scene_table_text(self) -> str:
        return split_script(self.draft)[1]

    @property
    def stable_state(self) -> WorkflowState:
        return self._stable

    def _enter(self, allowed: set[WorkflowState], target: WorkflowState, action: str) -> None:
        current = self._stable if self.state == WorkflowState.ERROR else self.state
        if current not in allowed:
            raise WorkflowStateError(f"Cannot {action} while the workflow is {self.state.value}.")
        self.error = None
        self.state = target

    def _settle(self, state: WorkflowState) -> None:
        self.state = state
        self._stable = state

    def _fail(self, exc: StudioError) -> None:
        logger.warning("Workflow for %r failed in %s: %s", self.idea.title, self.state.value, exc)
        self.error = exc
        self.state = WorkflowState.ERROR

    def recover(self) -> WorkflowState:
        """Return from ERROR, or from an abandoned stream, to the last stable state."""
        if self.state not in STABLE_STATES:
            self.state = self._stable
            self.error = None
        return self.state

    def _consume(self, fragments: Iterator[str], previous_draft: str) -> Iterator[str]:
        self.draft = ""
        try:
            for fragment in fragments:
                self.draft += fragment
                yield fragment
        except StudioError as exc:
            self.draft = previous_draft
            self._fail(exc)
            raise
        except GeneratorExit:
            # consumer stopped pulling
            self.draft = previous_draft
            self.state = self._stable
            raise
        self._draft_count += 1
        if self._draft_count == 1:
            self.narration_styles = parse_narration_styles(split_script(self.draft)[0])
            self.selected_style = self.narration_styles[0].name if self.narration_styles else None
        self._settle(WorkflowState.DRAFT_READY)

    def draft_script(
        self,
        scene_duration: str,
        suppress_narration: bool = False,
        language: str = "English",
    ) -> Iterator[str]:
        """Start the first draft; iterate the result to stream it into ``draft``."""
        self._enter({WorkflowState.IDLE}, WorkflowState.DRAFTING, "draft a script")
        try:
            self.conversation = self.orchestrator.open_script_conversation()
            fragments = self.orchestrator.draft_script(
                self.conversation, self.idea, scene_duration, suppress_narration, language
            )
        except StudioError as exc:
            self._fail(exc)
            raise
        except ValueError:
            self.state = self._stable
            raise
        return self._consume(fragments, self.draft)

    def revise_script(
        self,
        suggestion: str,
        scene_duration: str,
        suppress_narration: bool = False,
        language: str = "English",
    ) -> Iterator[str]:
        if not (suggestion or "").strip():
            raise ValueError("Describe the change you want before regenerating.")
        self._enter({WorkflowState.DRAFT_READY}, WorkflowState.REVISING, "revise the script")
        if self.conversation is None:
            self.state = self._stable
            raise WorkflowStateError("There is no draft conversation to revise.")
        try:
            fragments = self.orchestrator.revise_script(
                self.conversation,
                scene_duration,
                suppress_narration,
                language,
                suggestion.strip(),
                self.selected_style,
            )
        except StudioError as exc:
            self._fail(exc)
            raise
        except ValueError:
            self.state = self._stable
            raise
        return self._consume(fragments, self.draft)

    def select_narration_style(self, name: str) -> None:
        current = self._stable if self.state == WorkflowState.ERROR else self.state
        if current != WorkflowState.DRAFT_READY:
            raise WorkflowStateError("Narration style can only be chosen before finalizing.")
        if name not in {style.name for style in self.narration_styles}:
            raise ValueError(f"Unknown narration style {name!r}.")
        self.selected_style = name

    def finalize(self, max_scene_duration: Any, scene_count: Any = None) -> str:
        seconds, count = validate_finalize_inputs(max_scene_duration, scene_count)
        self._enter({WorkflowState.DRAFT_READY}, WorkflowState.FINALIZING, "finalize the script")
        scene_table = self.scene_table_text
        if not scene_table.strip():
            self.state = self._stable
            raise ValueError("The draft has no scene table to finalize; regenerate it first.")
        try:
            final_script = self.orchestrator.finalize_script(scene_table, seconds, count)
        except StudioError as exc:
            self._fail(exc)
            raise
        except ValueError:
            self.state = self._stable
            raise
        if not final_script.strip():
            empty = FormatError("Finalizing returned an empty scene list.")
            self._fail(empty)
            raise empty
        self.final_script = final_script
        self._settle(WorkflowState.FINALIZED)
        logger.info("Finalized script for %r", self.idea.title)
        return final_script

    def generate_seo(self) -> SeoContent:
        self._enter({WorkflowState.FINALIZED}, WorkflowState.GENERATING_SEO, "generate SEO content")
        if not (self.final_script or "").strip():
            self.state = self._stable
            raise ValueError("The finalized script is empty.")
        try:
            seo = self.orchestrator.generate_seo(self.final_script, self.idea)
        except StudioError as exc:
            self._fail(exc)
            raise
        except ValueError:
            self.state = self._stable
            raise
        self.seo = seo
        self._settle(WorkflowState.COMPLETE)
        self.history.append(HistoryItem(idea=self.idea, final_script=self.final_script, seo=seo))
        return seo
