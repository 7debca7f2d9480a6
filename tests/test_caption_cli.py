"""Tests for the caption command line script."""

import importlib.util
from pathlib import Path

import pytest

from addtextgif.decoder import decode_gif

SCRIPT = Path(__file__).parent.parent / "scripts" / "caption_gif.py"


@pytest.fixture(scope="module")
def caption_gif():
    """Imports the script as a module."""
    spec = importlib.util.spec_from_file_location("caption_gif", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCaptionCli:
    """Test captioning files from the command line."""

    def test_caption(self, caption_gif, wide_gif, tmp_path, capsys):
        """Test that a captioned GIF is written."""
        source = tmp_path / "in.gif"
        target = tmp_path / "out.gif"
        source.write_bytes(wide_gif)
        code = caption_gif.main([
            str(source), str(target), "--text", "Hello", "--start", "50", "--end", "300",
            "--y", "0.4", "--template", "subtitle",
        ])
        assert code == 0
        document = decode_gif(target.read_bytes(), with_data_urls=False)
        assert document.delays == [100, 150, 200]
        output = capsys.readouterr().out
        assert "3 frames" in output
        assert "from 0.05s to 0.30s" in output

    def test_missing_input(self, caption_gif, tmp_path, capsys):
        """Test the error for a missing input file."""
        code = caption_gif.main([str(tmp_path / "nope.gif"), str(tmp_path / "out.gif"), "--text", "x"])
        assert code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_invalid_input(self, caption_gif, png_data, tmp_path):
        """Test that non-GIF input fails cleanly."""
        source = tmp_path / "in.png"
        source.write_bytes(png_data)
        code = caption_gif.main([str(source), str(tmp_path / "out.gif"), "--text", "x"])
        assert code == 1
        assert not (tmp_path / "out.gif").exists()

    def test_unknown_template(self, caption_gif, tmp_path):
        """Test that only catalog templates are accepted."""
        with pytest.raises(SystemExit):
            caption_gif.main(["a.gif", "b.gif", "--text", "x", "--template", "fancy"])
