import logging
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from pathvalidate import sanitize_filename
from pymonad.either import Either, Right
from toolz import pipe

from .domain.errors import ExpansionError, ExpansionErrorKind, ItemError
from .domain.models import ItemMetadata, ProgressEvent, RunResult, RunState, StreamHandle
from .domain.ports import Archiver, Fetcher, PlaylistSource, StreamExtractor, TagReader, Transcoder
from .i18n import get_message
from .resolver import resolve_playlist_id

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
CompleteCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]

ARCHIVE_EXTENSION = "zip"

# Leaves room under the 255-byte file name limit for " [<item_id>]",
# the ".partial" marker and the extension.
MAX_STEM_BYTES = 200


def _ignore(*_args) -> None:
    pass


def safe_name(title: str, fallback: str) -> str:
    """Turns a display title into a file name usable on every platform."""
    name = sanitize_filename(
        title, platform="universal", max_len=MAX_STEM_BYTES, fs_encoding="utf-8"
    ).strip().lstrip(".").strip()
    return name or fallback


def _expansion_message(error: ExpansionError) -> str:
    if error.kind is ExpansionErrorKind.EMPTY_PLAYLIST:
        return get_message("no_videos")
    if error.kind is ExpansionErrorKind.NOT_FOUND:
        return get_message("playlist_not_found")
    return get_message("source_unavailable", error=error.message)


@dataclass
class RunContext:
    """Everything one run owns. Nothing here is shared between runs."""
    reference: str
    on_progress: ProgressCallback = _ignore
    on_complete: CompleteCallback = _ignore
    on_error: ErrorCallback = _ignore
    cancel_event: threading.Event = field(default_factory=threading.Event)
    state: RunState = RunState.IDLE
    completed: int = 0
    total: int = 0
    # lower-cased file stem -> source URL of the item that claimed it
    claimed_names: Dict[str, str] = field(default_factory=dict)
    skipped: List[Tuple[str, ItemError]] = field(default_factory=list)
    events: List[ProgressEvent] = field(default_factory=list)
    result: Optional[RunResult] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def transition(self, state: RunState) -> None:
        logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state

    def emit_progress(self) -> None:
        event = ProgressEvent(self.completed, self.total)
        self.events.append(event)
        self.on_progress(event.completed, event.total)

    def advance(self) -> None:
        self.completed += 1
        self.emit_progress()


class RunHandle:
    """A run executing on its background worker."""

    def __init__(self, context: RunContext, thread: threading.Thread):
        self._context = context
        self._thread = thread

    @property
    def state(self) -> RunState:
        return self._context.state

    @property
    def result(self) -> Optional[RunResult]:
        return self._context.result

    @property
    def skipped(self) -> List[Tuple[str, ItemError]]:
        return list(self._context.skipped)

    def cancel(self) -> None:
        """Stops the run at the next item boundary. No archive is produced."""
        self._context.cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[RunResult]:
        self._thread.join(timeout)
        return self._context.result

    def is_alive(self) -> bool:
        return self._thread.is_alive()


class PlaylistArchiver:
    """
    Drives a whole run: resolve the link, expand the playlist, materialize
    every item as a tagged audio file and zip the playlist folder.

    Items are processed one at a time. An item that fails is logged and left
    out; it never stops the run. Each run ends with exactly one call to
    either `on_complete` or `on_error`.
    """

    def __init__(
        self,
        playlist_source: PlaylistSource,
        extractor: StreamExtractor,
        fetcher: Fetcher,
        transcoder: Transcoder,
        archiver: Archiver,
        tag_reader: TagReader,
        music_root: Path,
        audio_format: str = "mp3",
    ):
        self._source = playlist_source
        self._extractor = extractor
        self._fetcher = fetcher
        self._transcoder = transcoder
        self._archiver = archiver
        self._music_root = Path(music_root)
        self._audio_format = audio_format
        self._tag_reader = tag_reader

    def run(
        self,
        reference: str,
        on_progress: ProgressCallback = _ignore,
        on_complete: CompleteCallback = _ignore,
        on_error: ErrorCallback = _ignore,
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """Executes a run on the calling thread and returns its result."""
        context = RunContext(
            reference=reference,
            on_progress=on_progress,
            on_complete=on_complete,
            on_error=on_error,
            cancel_event=cancel_event or threading.Event(),
        )
        return self._execute(context)

    def start(
        self,
        reference: str,
        on_progress: ProgressCallback = _ignore,
        on_complete: CompleteCallback = _ignore,
        on_error: ErrorCallback = _ignore,
    ) -> RunHandle:
        """Executes a run on a background worker thread."""
        context = RunContext(
            reference=reference,
            on_progress=on_progress,
            on_complete=on_complete,
            on_error=on_error,
        )
        thread = threading.Thread(
            target=self._execute, args=(context,), name="playlist-run", daemon=True
        )
        handle = RunHandle(context, thread)
        thread.start()
        return handle

    # --- Run lifecycle ---

    def _execute(self, context: RunContext) -> RunResult:
        try:
            result = self._run(context)
        except Exception as e:
            logger.critical(f"Run for '{context.reference}' crashed: {e}", exc_info=True)
            result = RunResult(error=get_message("unexpected_error", error=e))

        context.result = result
        if result.succeeded:
            context.transition(RunState.COMPLETED)
            logger.info(f"Run completed: {result.archive_path}")
            context.on_complete(str(result.archive_path))
        else:
            context.transition(RunState.FAILED)
            logger.error(f"Run failed: {result.error}")
            context.on_error(result.error)
        return result

    def _cancelled(self) -> RunResult:
        logger.info("Run cancelled, archive not created.")
        return RunResult(error=get_message("run_cancelled"))

    def _run(self, context: RunContext) -> RunResult:
        context.transition(RunState.RESOLVING)
        playlist_id = resolve_playlist_id(context.reference)
        if playlist_id is None:
            logger.error(f"No playlist identifier in '{context.reference}'.")
            return RunResult(error=get_message("invalid_link"))
        if context.cancelled:
            return self._cancelled()

        context.transition(RunState.EXPANDING)
        expanded = self._source.expand(playlist_id)
        if expanded.is_left():
            error, _ = expanded.monoid
            return RunResult(error=_expansion_message(error))
        playlist = expanded.value
        if context.cancelled:
            return self._cancelled()

        output_dir = self._music_root / safe_name(playlist.title, playlist.playlist_id)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create output directory '{output_dir}': {e}")
            return RunResult(error=get_message("output_dir_error", error=e))

        context.transition(RunState.PROCESSING_ITEMS)
        context.total = len(playlist.items)
        context.emit_progress()

        with tempfile.TemporaryDirectory(prefix="playlist-archiver-") as work_dir:
            for index, reference in enumerate(playlist.items, start=1):
                if context.cancelled:
                    return self._cancelled()
                outcome = self._process_item(context, reference, output_dir, Path(work_dir))
                if outcome.is_left():
                    error, _ = outcome.monoid
                    logger.warning(
                        f"Skipping item {index}/{context.total} '{reference}' "
                        f"[{error.kind.value}]: {error.message}"
                    )
                    context.skipped.append((reference, error))
                context.advance()

        if context.cancelled:
            return self._cancelled()

        context.transition(RunState.ARCHIVING)
        archive_path = self._music_root / f"{output_dir.name}.{ARCHIVE_EXTENSION}"
        archived = self._archiver.archive(output_dir, archive_path)
        if archived.is_left():
            error, _ = archived.monoid
            return RunResult(error=get_message("archive_error", error=error.message))

        if context.skipped:
            logger.warning(f"{len(context.skipped)} of {context.total} items skipped.")
        return RunResult(archive_path=archived.value)

    # --- Per item ---

    def _process_item(
        self, context: RunContext, reference: str, output_dir: Path, work_dir: Path
    ) -> Either[ItemError, Path]:
        return pipe(
            self._extractor.negotiate(reference),
            lambda e: e.bind(
                lambda negotiated: self._materialize(context, *negotiated, output_dir, work_dir)
            ),
        )

    def _materialize(
        self,
        context: RunContext,
        metadata: ItemMetadata,
        handle: StreamHandle,
        output_dir: Path,
        work_dir: Path,
    ) -> Either[ItemError, Path]:
        target = self._target_path(context, metadata, output_dir)
        if target.exists():
            logger.info(f"File already exists: {target}")
            return Right(target)

        raw_file = work_dir / f"{metadata.item_id}.{handle.media_kind}"
        try:
            return pipe(
                self._fetcher.fetch(handle.url, raw_file, handle.headers),
                lambda e: e.bind(lambda raw: self._transcoder.transcode(raw, target, metadata)),
            )
        finally:
            raw_file.unlink(missing_ok=True)

    def _belongs_to(self, existing: Path, metadata: ItemMetadata) -> bool:
        source = self._tag_reader.get_comment(existing)
        return source is None or source.strip() == metadata.source_url.strip()

    def _target_path(self, context: RunContext, metadata: ItemMetadata, output_dir: Path) -> Path:
        """
        Chooses the output file of an item. The title-derived name is used
        unless another item already owns it, in this run or on disk; the
        item id is then appended to the name.
        """
        stem = safe_name(metadata.title, metadata.item_id)
        candidates = (stem, f"{stem} [{metadata.item_id}]")
        for candidate in candidates:
            target = output_dir / f"{candidate}.{self._audio_format}"
            owner = context.claimed_names.get(candidate.lower())
            if owner is not None and owner != metadata.source_url:
                continue
            if owner is None and target.exists() and not self._belongs_to(target, metadata):
                continue
            context.claimed_names[candidate.lower()] = metadata.source_url
            return target

        logger.warning(f"Both '{stem}' and its id-suffixed name are taken by other items.")
        return output_dir / f"{candidates[-1]}.{self._audio_format}"
