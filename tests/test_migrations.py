from pathlib import Path

import pytest

from aurora.db import run_migrations


def test_config_points_at_package_migrations():
    cfg = run_migrations.build_config()
    location = Path(cfg.get_main_option("script_location"))
    assert (location / "env.py").is_file()
    assert any((location / "versions").glob("*_initial_schema.py"))


@pytest.mark.parametrize("argv, code", [([], 1), (["squash"], 2), (["show"], 2)])
def test_bad_invocations_exit(argv, code):
    with pytest.raises(SystemExit) as exc:
        run_migrations.main(argv)
    assert exc.value.code == code


def test_upgrade_defaults_to_head(monkeypatch):
    calls = []
    monkeypatch.setitem(run_migrations._COMMANDS, "upgrade", (lambda cfg, *rev: calls.append(rev), ["head"]))
    run_migrations.main(["upgrade"])
    assert calls == [("head",)]
