import importlib.util
import sys
from pathlib import Path

import pytest

import routeprobe.settings as settings_module
from routeprobe.settings import ProbeConfig, Viewport, apply_overrides, load_probe_config


def test_load_probe_config_reads_yaml_and_ignores_unknown_keys(tmp_path: Path):
    config_file = tmp_path / "probe_config.yaml"
    config_file.write_text(
        "base_url: http://app.test:8080\n"
        "max_concurrency: 4\n"
        "prober: HTTP\n"
        "not_a_setting: 1\n",
        encoding="utf-8",
    )

    config = load_probe_config(config_file)

    assert config.base_url == "http://app.test:8080"
    assert config.max_concurrency == 4
    assert config.prober == "http"
    assert not config.uses_browser


def test_missing_yaml_falls_back_to_defaults(tmp_path: Path):
    config = load_probe_config(tmp_path / "nope.yaml")
    assert config == ProbeConfig()


def test_non_mapping_yaml_falls_back_to_defaults(tmp_path: Path):
    config_file = tmp_path / "probe_config.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    assert load_probe_config(config_file) == ProbeConfig()


def test_max_concurrency_is_at_least_one():
    assert ProbeConfig(max_concurrency=0).max_concurrency == 1
    assert ProbeConfig(max_concurrency=-5).max_concurrency == 1


def test_unknown_engine_falls_back_to_chromium():
    config = ProbeConfig(prober="opera")
    assert config.uses_browser
    assert config.browser_engine == "chromium"
    assert ProbeConfig(prober="Firefox").browser_engine == "firefox"


def test_apply_overrides_skips_none():
    base = ProbeConfig(base_url="http://a", max_concurrency=3)
    merged = apply_overrides(base, base_url=None, max_concurrency=7, output_dir="out")

    assert merged.base_url == "http://a"
    assert merged.max_concurrency == 7
    assert merged.output_dir == "out"
    assert base.max_concurrency == 3


def test_apply_overrides_rejects_unknown_option():
    with pytest.raises(TypeError):
        apply_overrides(ProbeConfig(), colour="blue")


def test_credentials_complete_only_with_both_values():
    assert ProbeConfig(login_username="u", login_password="p").credentials.complete
    assert not ProbeConfig(login_username="u").credentials.complete


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1280x720", (1280, 720)),
        (" 390X844 ", (390, 844)),
        ("", None),
        (None, None),
        ("wide", None),
        ("1280x", None),
        ("0x720", None),
    ],
)
def test_viewport_parse(raw, expected):
    viewport = Viewport.parse(raw)
    if expected is None:
        assert viewport is None
    else:
        assert (viewport.width, viewport.height) == expected


def test_importing_settings_reads_no_yaml(capsys, monkeypatch):
    source = Path(settings_module.__file__)
    spec = importlib.util.spec_from_file_location("routeprobe_settings_fresh", source)
    fresh = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, spec.name, fresh)
    spec.loader.exec_module(fresh)

    assert capsys.readouterr().out == ""
    assert fresh.DEFAULT_PROBE_CONFIG == fresh.ProbeConfig()
