from vadtime.domain.workspace import Workspace


def test_workspace_paths(tmp_path):
    ws = Workspace.create(str(tmp_path / ".vadtime"), run_id="abc123")
    assert ws.root.name == "abc123"
    assert ws.vad_output_txt.name == "vad_output.txt"
    assert ws.merged_audio_wav.name == "merged_audio.wav"
    assert ws.subtitles_srt.name == "transcribed.srt"
    assert ws.run_manifest.name == "run.json"


def test_clip_directories_are_created_lazily(tmp_path):
    ws = Workspace.create(str(tmp_path / ".vadtime"), run_id="abc123")
    assert ws.segments_dir == ws.root / "segments"
    assert ws.segments_srt_dir == ws.root / "segments_srt"
    assert not ws.segments_dir.exists()


def test_generated_run_id(tmp_path):
    ws = Workspace.create(str(tmp_path))
    assert len(ws.run_id) == 12
    assert ws.root.is_dir()
