from pathlib import Path

import pytest

from locatorpicker import settings as settings_module
from locatorpicker.__main__ import main


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    config_path = tmp_path / "config" / "config.json"
    monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
    return config_path


def _page(tmp_path: Path) -> Path:
    path = tmp_path / "page.html"
    path.write_text(
        "<html><body>"
        '<section aria-label="Shipping"><button>Submit</button></section>'
        '<section aria-label="Billing"><button>Submit</button></section>'
        '<img alt="Logo"><p>Hi</p><p>Hi</p>'
        "</body></html>",
        encoding="utf-8",
    )
    return path


def test_synthesize_prints_first_selected_locator(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["synthesize", str(_page(tmp_path)), "--select", "img"]) == 0
    assert capsys.readouterr().out.strip() == 'page.get_by_alt_text("Logo", exact=True)'


def test_synthesize_all_in_js_dialect(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["synthesize", str(_page(tmp_path)), "--select", "p", "--all", "--dialect", "js"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert all(line.startswith('page.getByText("Hi") // WARNING:') for line in lines)


def test_synthesize_reports_selector_problems(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    page = _page(tmp_path)
    assert main(["synthesize", str(page), "--select", "table"]) == 1
    assert main(["synthesize", str(page), "--select", "div[[["]) == 2
    assert main(["synthesize", str(tmp_path / "missing.html"), "--select", "p"]) == 2
    assert "Invalid selector" in capsys.readouterr().err


def test_verify_prints_count(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    page = _page(tmp_path)
    assert main(["verify", str(page), 'page.get_by_role("region", name="Billing").get_by_role("button")']) == 0
    out = capsys.readouterr().out
    assert out.startswith("1 match(es)")
    assert "button" in out

    assert main(["verify", str(page), ".nonexistent-class"]) == 1
    assert capsys.readouterr().out.startswith("0 match(es)")


def test_config_set_and_show(_isolated_config: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["config", "set", "dialect", "js"]) == 0
    assert _isolated_config.exists()
    capsys.readouterr()

    assert main(["config", "show"]) == 0
    assert "dialect = js" in capsys.readouterr().out

    assert main(["config", "set", "theme", "dark"]) == 2


def test_saved_dialect_is_used_by_default(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["config", "set", "dialect", "js"])
    capsys.readouterr()
    assert main(["synthesize", str(_page(tmp_path)), "--select", "img"]) == 0
    assert capsys.readouterr().out.strip() == 'page.getByAltText("Logo", { exact: true })'
