from jointsync.config.settings import Settings, _get_bool, _get_float, _get_list, settings


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("JS_FLAG", "Yes")
    monkeypatch.setenv("JS_LIST", "a, b,,c")
    monkeypatch.setenv("JS_RATE", "not-a-number")
    assert _get_bool("JS_FLAG", False) is True
    assert _get_bool("JS_UNSET_FLAG", True) is True
    assert _get_list("JS_LIST", ["x"]) == ["a", "b", "c"]
    assert _get_list("JS_UNSET_LIST", ["x"]) == ["x"]
    assert _get_float("JS_RATE", 100.0) == 100.0


def test_defaults_are_usable():
    assert isinstance(settings, Settings)
    assert settings.target_hz > 0
    assert settings.chunk_size > 0
    assert settings.resample_strategy in ("grid_snap", "direct")
