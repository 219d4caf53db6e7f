import json

import pytest

from berry_editor.cli import main


@pytest.fixture
def html_file(tmp_path):
    path = tmp_path / "doc.html"
    path.write_text('<p onclick="x()">Hi <b>there</b></p><script>bad()</script>', encoding="utf-8")
    return path


def test_sanitize_prints_clean_html(html_file, capsys):
    assert main(["sanitize", str(html_file)]) == 0
    assert capsys.readouterr().out.strip() == "<p>Hi <b>there</b></p>"


def test_parse_prints_camel_case_json(html_file, capsys):
    assert main(["parse", str(html_file), "--indent", "0"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["blocks"][0]["type"] == "paragraph"
    assert data["blocks"][0]["children"][1]["marks"]["bold"] is True


def test_roundtrip_normalizes_marks(html_file, capsys):
    assert main(["roundtrip", str(html_file)]) == 0
    assert capsys.readouterr().out.strip() == "<p>Hi <strong>there</strong></p>"


def test_config_lists_settings(capsys):
    assert main(["config"]) == 0
    assert "max_table_dimension=10" in capsys.readouterr().out


def test_no_action_prints_help():
    assert main([]) == 1
