"""Resolution orchestrator: selection -> handle -> descriptor -> commit.

State machine::

    IDLE -> OPENING -> EXTRACTING_METADATA -> CLASSIFYING -> COMMITTED
                 \\              \\                  \\
                  +-> FAILED      +-> FAILED         +-> FAILED (fatal anomaly)

    IDLE -> ABORTED  (picker closed without a selection)

The backend handle is acquired when OPENING succeeds and released on every
path out of the OPENING..COMMITTED span. Close errors are logged and ignored
so they never replace the primary outcome.
"""

from __future__ import annotations

import inspect
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

import structlog

from flashsource.domain.exceptions import (
    FlashSourceError,
    MetadataError,
    SourceOpenError,
    UnsupportedProtocolError,
)
from flashsource.domain.model import (
    Anomaly,
    AnomalyCode,
    ErrorRecord,
    RawSelection,
    ResolutionOutcome,
    ResolutionState,
    SourceDescriptor,
    SourceKind,
)
from flashsource.domain.protocols import (
    AnomalyListener,
    BackendHandle,
    ErrorPresenter,
    SelectionStore,
    WarningConfirmation,
)
from flashsource.formats import DEFAULT_WINDOWS_IMAGE_PATTERNS
from flashsource.resolution import messages
from flashsource.resolution.classifier import classify, first_fatal
from flashsource.resolution.extractor import MetadataExtractor
from flashsource.resolution.factory import SourceFactory
from flashsource.resolution.recent import RecentUrlStore

__all__ = ["SourceResolver"]

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def _released(handle: BackendHandle) -> AsyncIterator[BackendHandle]:
    try:
        yield handle
    finally:
        try:
            await handle.close()
        except Exception as exc:
            logger.debug("Ignoring error while releasing source", error=str(exc))


class _Run:
    """Book-keeping for one resolution (states visited, anomalies)."""

    def __init__(self, selection: RawSelection) -> None:
        self.selection = selection
        self.history: list[ResolutionState] = [ResolutionState.IDLE]
        self.anomalies: tuple[Anomaly, ...] = ()

    @property
    def state(self) -> ResolutionState:
        return self.history[-1]

    def enter(self, state: ResolutionState) -> None:
        logger.debug("Resolution state", path=self.selection.source_path, state=state.value)
        self.history.append(state)

    def outcome(self, **kwargs: object) -> ResolutionOutcome:
        return ResolutionOutcome(
            state=self.state,
            selection=self.selection,
            anomalies=self.anomalies,
            history=tuple(self.history),
            **kwargs,  # type: ignore[arg-type]
        )


class SourceResolver:
    """Resolve user selections and publish them to the selection store.

    Each ``resolve()`` call is independent; concurrent calls are allowed and
    the selection store decides the last writer. Failures are returned in the
    outcome and handed to ``error_presenter``, never raised.

    Args:
        selection_store: Receives the descriptor on commit
        recent_urls: Recent-URL list updated after a confirmed URL commit
        factory: Builds backend handles (default SourceFactory())
        extractor: Builds descriptors (default MetadataExtractor())
        error_presenter: Shows failures to the user
        on_anomaly: Notified of every classified anomaly
        windows_image_patterns: File-name fragments flagging Windows images
    """

    def __init__(
        self,
        selection_store: SelectionStore,
        recent_urls: RecentUrlStore | None = None,
        *,
        factory: SourceFactory | None = None,
        extractor: MetadataExtractor | None = None,
        error_presenter: ErrorPresenter | None = None,
        on_anomaly: AnomalyListener | None = None,
        windows_image_patterns: Iterable[str] = DEFAULT_WINDOWS_IMAGE_PATTERNS,
    ) -> None:
        self.selection_store = selection_store
        self.recent_urls = recent_urls
        self.factory = factory or SourceFactory()
        self.extractor = extractor or MetadataExtractor()
        self.error_presenter = error_presenter
        self.on_anomaly = on_anomaly
        self.windows_image_patterns = tuple(windows_image_patterns)

    async def resolve(
        self,
        selection: RawSelection,
        *,
        confirm: WarningConfirmation | None = None,
    ) -> ResolutionOutcome:
        """Run one resolution to a terminal state.

        ``confirm`` is asked once per warning after the commit; returning
        False deselects the source again. Without it warnings are accepted.
        If ``confirm`` raises, the source is deselected and the error
        propagates.
        """
        run = _Run(selection)

        if not selection.source_path:
            logger.info("Selector closed", kind=selection.kind.value)
            run.enter(ResolutionState.ABORTED)
            return run.outcome()

        run.enter(ResolutionState.OPENING)
        try:
            handle = await self.factory.create_source(selection)
        except SourceOpenError as exc:
            return self._fail(run, exc)

        async with _released(handle):
            run.enter(ResolutionState.EXTRACTING_METADATA)
            try:
                descriptor = await self.extractor.extract(handle, selection)
            except (SourceOpenError, MetadataError) as exc:
                return self._fail(run, exc)

            run.enter(ResolutionState.CLASSIFYING)
            run.anomalies = tuple(
                classify(selection, descriptor, windows_image_patterns=self.windows_image_patterns)
            )
            for anomaly in run.anomalies:
                self._notify(selection, descriptor, anomaly)

            fatal = first_fatal(run.anomalies)
            if fatal is not None:
                error = UnsupportedProtocolError.for_url(selection.source_path)
                return self._fail(run, error, title=fatal.title, description=fatal.message)

            self.selection_store.select_source(descriptor)
            run.enter(ResolutionState.COMMITTED)
            logger.info(
                "Select image",
                path=descriptor.path,
                kind=descriptor.source_kind.value,
                size=descriptor.size,
                has_partition_table=descriptor.has_partition_table,
            )

        try:
            confirmed = await self._confirm_warnings(run.anomalies, confirm)
        except BaseException:
            self.reselect()
            raise
        if not confirmed:
            self.reselect()
        elif selection.kind is SourceKind.URL and self.recent_urls is not None:
            self.recent_urls.add(selection.url)

        return run.outcome(descriptor=descriptor, confirmed=confirmed)

    def reselect(self) -> None:
        """Clear the current selection (the "Remove" action)."""
        previous = self.selection_store.get_source()
        logger.info("Reselect image", previous_image=previous.path if previous else None)
        self.selection_store.deselect_source()

    async def _confirm_warnings(
        self,
        anomalies: Iterable[Anomaly],
        confirm: WarningConfirmation | None,
    ) -> bool:
        for anomaly in anomalies:
            if anomaly.is_fatal or confirm is None:
                continue
            answer = confirm(anomaly)
            if inspect.isawaitable(answer):
                answer = await answer
            if not answer:
                logger.info("Warning declined", code=anomaly.code.value)
                return False
        return True

    def _notify(self, selection: RawSelection, descriptor: SourceDescriptor, anomaly: Anomaly) -> None:
        if anomaly.code is AnomalyCode.LOOKS_LIKE_WINDOWS_IMAGE:
            logger.info("Possibly Windows image", image=selection.source_path)
        elif anomaly.code is AnomalyCode.MISSING_PARTITION_TABLE:
            logger.info("Missing partition table", path=descriptor.path, size=descriptor.size)
        if self.on_anomaly is not None:
            self.on_anomaly(anomaly)

    def _fail(
        self,
        run: _Run,
        error: FlashSourceError,
        *,
        title: str = messages.OPEN_SOURCE_TITLE,
        description: str | None = None,
    ) -> ResolutionOutcome:
        source_path = run.selection.source_path
        if description is None:
            backend_message = error.context.get("backend_message") or error.message
            description = messages.open_source_error(source_path, backend_message)
        record = ErrorRecord(title=title, source_path=source_path, description=description)

        run.enter(ResolutionState.FAILED)
        logger.warning(title, path=source_path, error_type=type(error).__name__, error=error.message)
        if self.error_presenter is not None:
            self.error_presenter(record)
        return run.outcome(error=error)
