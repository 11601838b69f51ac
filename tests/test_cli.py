from shelfscan.cli import build_parser, main


def test_missing_video_file(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
    assert main(["--video", str(tmp_path / "missing.mp4"), "--verbose"]) == 1


def test_save_requires_owner(video_file, monkeypatch):
    monkeypatch.delenv("SHELFSCAN_OWNER_ID", raising=False)
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
    assert main(["--video", str(video_file), "--save", "--verbose"]) == 1


def test_parser_defaults_leave_config_to_defaults():
    args = build_parser().parse_args(["--video", "shelf.mp4"])
    assert args.frames is None
    assert args.duration is None
    assert not args.save


def test_missing_ffmpeg_is_reported(video_file, monkeypatch, capsys):
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "key")

    def no_ffmpeg(*args, **kwargs):
        raise RuntimeError("ffmpeg executable not found. Please install ffmpeg.")

    monkeypatch.setattr("shelfscan.cli.scan_video", no_ffmpeg)
    assert main(["--video", str(video_file), "--verbose"]) == 1
    assert "ffmpeg executable not found" in capsys.readouterr().err
