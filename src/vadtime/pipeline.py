"""
Pipeline orchestration for VadTime.

The pipeline executes one batch pass over a recording:

1) Detect speech segments (VAD), or take pre-computed ones
2) Merge segments by silence gap
3) Extract one clip per merged segment (or one concatenated clip)
4) Transcribe clips concurrently
5) Reassemble subtitles on the recording's timeline and write the SRT

Responsibilities:
- Coordinate stage order and record everything in a PipelineResult
- Catch stage failures so callers always get a result back
- Always record elapsed time and write run.json

Does NOT:
- Implement detection, recognition or ffmpeg calls (services do)
- Own filesystem layout (Workspace does)
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from vadtime.domain.job import Job
from vadtime.domain.result import PipelineResult
from vadtime.domain.segments import MergedInterval, SpeechSequence, build_sequence
from vadtime.domain.subtitles import SubtitleEntry
from vadtime.exceptions import InputValidationError, VadTimeError
from vadtime.services.correction import correct_timestamps
from vadtime.services.extraction import build_concatenated_clip, extract_segments, plan_extraction
from vadtime.services.merge import merge_segments
from vadtime.services.reassembly import reassemble, spans_by_clip
from vadtime.services.transcription import Recognizer, create_recognizer, transcribe_all, write_clip_srt
from vadtime.services.vad import WhisperCppVadDetector, save_segments
from vadtime.utils import ffmpeg
from vadtime.utils.checks import require_input_file
from vadtime.utils.logging import get_logger
from vadtime.utils.manifest import write_run_manifest
from vadtime.utils.srt import write_srt
from vadtime.utils.timing import Clock, StepTimer, utc_now

log = get_logger(__name__)


class Pipeline:
    """
    Runs the VadTime stages for one Job.

    Notes:
    - The detector and recognizer are created per-run from settings unless
      injected, because they may depend on local binaries or credentials.
    - `run_cmd` executes ffmpeg commands; inject it to avoid subprocesses.
    """

    def __init__(
        self,
        *,
        detector: Optional[WhisperCppVadDetector] = None,
        recognizer: Optional[Recognizer] = None,
        run_cmd: Optional[Callable[[list], object]] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.detector = detector
        self.recognizer = recognizer
        self.run_cmd = run_cmd
        self.clock = clock

    def run(self, job: Job, *, segments: Optional[Sequence[Sequence[float]]] = None) -> PipelineResult:
        """
        Run the pipeline once.

        Args:
            job: Execution context (settings, workspace, audio path).
            segments: Pre-detected `(index, start_ms, end_ms)` triples; when
                given, VAD is skipped.

        Returns:
            The populated PipelineResult. Failures are recorded on it, not raised.
        """
        timer = StepTimer(clock=self.clock, log=log)
        started_at = timer.clock()
        settings = job.settings
        result = PipelineResult(input_path=Path(job.audio_path))

        try:
            settings.validate_for_run()
            audio = require_input_file(job.audio_path, what="source recording")
            recognizer = self.recognizer or create_recognizer(settings)
            if self.run_cmd is None and segments is None:
                # VAD runs before the merge decides whether any clip is cut.
                ffmpeg.ensure_ffmpeg()

            # 1) Detect
            with timer.step("vad"):
                flat = self._detect(job, audio, segments)
            original = build_sequence(flat)
            result.detected_count = len(original)
            if len(original) == 0:
                raise InputValidationError(f"No speech segments detected in {audio}.")
            if not original.is_well_formed():
                log.warning("Detected segments overlap or are out of order; merging as given")
            result.vad_output_path = save_segments(original, job.workspace.vad_output_txt)
            result.add_file(result.vad_output_path, "VAD", "detected speech segments")

            # 2) Merge
            with timer.step("merge"):
                merged = merge_segments(
                    original,
                    settings.max_gap_seconds,
                    settings.min_duration_seconds,
                    log=log,
                )
            result.merged_count = len(merged)

            if (
                self.run_cmd is None
                and segments is not None
                and (settings.strategy == "concatenated" or len(merged) > 1)
            ):
                ffmpeg.ensure_ffmpeg()

            # 3-5) Extract, transcribe, reassemble
            if settings.strategy == "concatenated":
                entries = self._run_concatenated(job, audio, original, merged, recognizer, timer, result)
            else:
                entries = self._run_segments(job, audio, merged, recognizer, timer, result)

            with timer.step("write"):
                out = write_srt(entries, job.subtitles_path)
            result.subtitles_path = out
            result.add_file(out, "SRT", "final subtitles")

            if not settings.keep_intermediate_files:
                self._cleanup(job, result)

            result.success = True
            log.info("Wrote %d subtitles -> %s", len(entries), out)
        except VadTimeError as exc:
            self._record_failure(result, exc.message, exc.category.value, exc.exit_code or 1)
        except Exception as exc:
            log.exception("Unexpected pipeline failure")
            self._record_failure(result, str(exc) or exc.__class__.__name__, "runtime", 1)
        finally:
            finished_at = timer.clock()
            result.stage_seconds = timer.durations()
            result.failed_stage = timer.failed_step()
            result.total_seconds = (finished_at - started_at).total_seconds()
            try:
                write_run_manifest(
                    job=job,
                    result=result,
                    steps=timer.steps,
                    started_at=started_at,
                    finished_at=finished_at,
                )
            except (OSError, ValueError) as exc:
                log.warning("Could not write run manifest: %s", exc)

        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _detect(self, job: Job, audio: Path, segments):
        if segments is not None:
            log.info("Using %d pre-detected segments", len(segments))
            return segments
        detector = self.detector or WhisperCppVadDetector.from_settings(job.settings)
        return detector.detect(audio, log=log)

    def _runner(self) -> Callable[[list], object]:
        return self.run_cmd or ffmpeg.run_ffmpeg

    def _run_segments(
        self,
        job: Job,
        audio: Path,
        merged: SpeechSequence[MergedInterval],
        recognizer: Recognizer,
        timer: StepTimer,
        result: PipelineResult,
    ) -> List[SubtitleEntry]:
        settings = job.settings
        result.segments_dir = job.workspace.segments_dir
        result.segments_srt_dir = job.workspace.segments_srt_dir

        with timer.step("extract"):
            plan = plan_extraction(merged, source=audio, output_dir=job.workspace.segments_dir)
            clips = extract_segments(plan, run=self._runner(), log=log)
        result.extracted_count = len(plan.requests)
        for request in plan.requests:
            result.add_file(request.output_path, "Audio", "extracted segment")

        with timer.step("transcribe"):
            transcriptions = transcribe_all(
                clips,
                recognizer,
                temperature=settings.temperature,
                max_concurrency=settings.max_concurrency,
                log=log,
            )
        result.transcribed_count = sum(1 for t in transcriptions if t.success)
        for transcription in transcriptions:
            if transcription.success:
                srt_path = write_clip_srt(transcription, job.workspace.segments_srt_dir)
                result.add_file(srt_path, "SRT", "clip transcription")

        with timer.step("reassemble"):
            return reassemble(merged, spans_by_clip(transcriptions), log=log)

    def _run_concatenated(
        self,
        job: Job,
        audio: Path,
        original: SpeechSequence,
        merged: SpeechSequence[MergedInterval],
        recognizer: Recognizer,
        timer: StepTimer,
        result: PipelineResult,
    ) -> List[SubtitleEntry]:
        settings = job.settings
        with timer.step("extract"):
            clip = build_concatenated_clip(
                merged,
                source=audio,
                output_path=job.workspace.merged_audio_wav,
                run=self._runner(),
                log=log,
            )
        result.extracted_count = len(merged)
        result.add_file(clip, "Audio", "concatenated merged segments")

        with timer.step("transcribe"):
            (transcription,) = transcribe_all(
                [clip],
                recognizer,
                temperature=settings.temperature,
                log=log,
            )
        if not transcription.success:
            raise VadTimeError(f"Transcription of concatenated clip failed: {transcription.error}")
        result.transcribed_count = 1

        with timer.step("correct"):
            return correct_timestamps(
                transcription.spans,
                original,
                merged,
                gap_threshold_seconds=settings.mapping_gap_seconds,
                log=log,
            )

    def _cleanup(self, job: Job, result: PipelineResult) -> None:
        removed: List[Path] = []
        for directory in (job.workspace.segments_dir, job.workspace.segments_srt_dir):
            if directory.exists():
                try:
                    shutil.rmtree(directory)
                except OSError as exc:
                    log.error("Failed to remove %s: %s", directory, exc)
                    continue
                removed.append(directory)
        merged_audio = job.workspace.root / "merged_audio.wav"
        if merged_audio.exists():
            try:
                merged_audio.unlink()
                removed.append(merged_audio)
            except OSError as exc:
                log.error("Failed to remove %s: %s", merged_audio, exc)
        if removed:
            log.info("Removed intermediate files: %s", ", ".join(str(p) for p in removed))
            result.files = [
                f for f in result.files
                if not any(f.path == p or p in f.path.parents for p in removed)
            ]

    @staticmethod
    def _record_failure(result: PipelineResult, message: str, category: str, exit_code: int) -> None:
        result.success = False
        result.error_message = message
        result.error_category = category
        result.exit_code = exit_code
        log.error("Transcription failed: %s", message)
