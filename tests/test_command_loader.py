"""Tests for command discovery and registration."""

import os
import sys
import textwrap
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from switchboard.command_loader import MODULE_PREFIX, load_commands
from switchboard.commands import DEFAULT_USAGE
from switchboard.exceptions import RegistryLoadError


def _write(root: Path, relpath: str, source: str) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))
    return path


PING = """
    async def execute(message, args, client):
        await message.reply("pong")

    command = {"name": "ping", "description": "Pong.", "execute": execute}
"""


@pytest.fixture(autouse=True)
def _cleanup_modules():
    yield
    for name in [m for m in sys.modules if m.startswith(MODULE_PREFIX)]:
        sys.modules.pop(name, None)


def test_empty_directory_gives_empty_registry(tmp_path):
    registry = load_commands(tmp_path)
    assert len(registry) == 0


def test_missing_directory_raises(tmp_path):
    with pytest.raises(RegistryLoadError) as exc_info:
        load_commands(tmp_path / "nope")
    assert exc_info.value.path == tmp_path / "nope"


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="root can read unreadable directories",
)
def test_unreadable_directory_raises(tmp_path):
    locked = tmp_path / "locked"
    locked.mkdir()
    locked.chmod(0)
    try:
        with pytest.raises(RegistryLoadError):
            load_commands(locked)
    finally:
        locked.chmod(0o755)


def test_loads_command_and_fills_defaults(tmp_path):
    _write(tmp_path, "General/ping.py", PING)

    registry = load_commands(tmp_path)

    descriptor = registry.get("ping")
    assert descriptor is not None
    assert descriptor.description == "Pong."
    assert descriptor.category == "General"
    assert descriptor.usage == DEFAULT_USAGE
    assert descriptor.cooldown_seconds == 0
    assert descriptor.aliases == ()
    assert descriptor.aliased_from is None
    assert descriptor.source == tmp_path / "General" / "ping.py"


def test_explicit_category_is_kept(tmp_path):
    _write(tmp_path, "General/roll.py", """
        def execute(message, args, client):
            pass

        command = {"name": "roll", "category": "Fun", "usage": "roll <n>", "execute": execute}
    """)

    descriptor = load_commands(tmp_path).get("roll")
    assert descriptor.category == "Fun"
    assert descriptor.usage == "roll <n>"


def test_aliases_register_tagged_copies(tmp_path):
    _write(tmp_path, "General/help.py", """
        def execute(message, args, client):
            pass

        command = {"name": "help", "aliases": ["h", "commands"], "execute": execute}
    """)

    registry = load_commands(tmp_path)

    assert registry.keys() == ["help", "h", "commands"]
    primary = registry.get("help")
    for alias in ("h", "commands"):
        entry = registry.get(alias)
        assert entry.aliased_from == "help"
        assert entry.canonical_name == "help"
        assert entry.handler is primary.handler
    assert registry.alias_count == 2
    assert [d.name for d in registry.primaries()] == ["help"]


def test_object_export_with_handler_and_cooldown_seconds(tmp_path):
    _write(tmp_path, "Util/echo.py", """
        class Echo:
            name = "echo"
            cooldown_seconds = 3

            async def handler(self, message, args, client):
                await message.reply(" ".join(args))

        command = Echo()
    """)

    descriptor = load_commands(tmp_path).get("echo")
    assert descriptor.cooldown_seconds == 3
    assert callable(descriptor.handler)
    assert descriptor.category == "Util"


@pytest.mark.parametrize("source", [
    "x = 1\n",
    "command = {'name': 'nohandler'}\n",
    "command = {'name': 'bad', 'execute': 'not callable'}\n",
    "command = {'execute': lambda m, a, c: None}\n",
    "command = {'name': '', 'execute': lambda m, a, c: None}\n",
    "command = {'name': 'neg', 'cooldown': -1, 'execute': lambda m, a, c: None}\n",
])
def test_invalid_descriptor_is_skipped_with_warning(tmp_path, source):
    _write(tmp_path, "General/ping.py", PING)
    _write(tmp_path, "General/zzz_bad.py", source)

    with capture_logs() as logs:
        registry = load_commands(tmp_path)

    assert registry.keys() == ["ping"]
    warnings = [e for e in logs if e["event"] == "command_invalid"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert warnings[0]["path"].endswith("zzz_bad.py")


def test_import_error_is_logged_and_loading_continues(tmp_path):
    _write(tmp_path, "General/aaa_broken.py", "raise RuntimeError('boom')\n")
    _write(tmp_path, "General/ping.py", PING)

    with capture_logs() as logs:
        registry = load_commands(tmp_path)

    assert "ping" in registry
    failures = [e for e in logs if e["event"] == "command_load_failed"]
    assert len(failures) == 1
    assert failures[0]["error_type"] == "RuntimeError"


def test_system_exit_at_import_skips_only_that_file(tmp_path):
    _write(tmp_path, "General/aaa_exits.py", "raise SystemExit(3)\n")
    _write(tmp_path, "General/ping.py", PING)

    with capture_logs() as logs:
        registry = load_commands(tmp_path)

    assert registry.keys() == ["ping"]
    failures = [e for e in logs if e["event"] == "command_load_failed"]
    assert [f["error_type"] for f in failures] == ["SystemExit"]
    assert not any(m.endswith("aaa_exits") for m in sys.modules)


def test_non_python_and_private_files_are_ignored(tmp_path):
    _write(tmp_path, "General/ping.py", PING)
    _write(tmp_path, "General/readme.txt", "not code")
    _write(tmp_path, "General/__init__.py", "raise RuntimeError('never imported')\n")
    _write(tmp_path, "_drafts/wip.py", "raise RuntimeError('never imported')\n")

    with capture_logs() as logs:
        registry = load_commands(tmp_path)

    assert registry.keys() == ["ping"]
    assert not [e for e in logs if e["event"] in ("command_load_failed", "command_invalid")]


def test_nested_directories_use_immediate_parent_as_category(tmp_path):
    _write(tmp_path, "Games/Cards/draw.py", """
        def execute(message, args, client):
            pass

        command = {"name": "draw", "execute": execute}
    """)

    assert load_commands(tmp_path).get("draw").category == "Cards"


def test_duplicate_name_later_file_wins(tmp_path):
    _write(tmp_path, "A/first.py", """
        def execute(message, args, client):
            return "first"

        command = {"name": "dup", "description": "first", "execute": execute}
    """)
    _write(tmp_path, "B/second.py", """
        def execute(message, args, client):
            return "second"

        command = {"name": "dup", "description": "second", "execute": execute}
    """)

    with capture_logs() as logs:
        registry = load_commands(tmp_path)

    assert len(registry) == 1
    assert registry.get("dup").description == "second"
    assert registry.get("dup").category == "B"
    assert any(e["event"] == "command_overridden" for e in logs)


def test_uppercase_name_is_kept_and_warned(tmp_path):
    _write(tmp_path, "General/shout.py", """
        def execute(message, args, client):
            pass

        command = {"name": "Shout", "execute": execute}
    """)

    with capture_logs() as logs:
        registry = load_commands(tmp_path)

    assert "Shout" in registry
    assert any(e["event"] == "command_name_not_lowercase" for e in logs)


def test_loading_twice_yields_equivalent_registries(tmp_path):
    _write(tmp_path, "General/ping.py", PING)
    _write(tmp_path, "General/help.py", """
        def execute(message, args, client):
            pass

        command = {"name": "help", "aliases": ["h"], "cooldown": 2, "execute": execute}
    """)

    first = load_commands(tmp_path)
    second = load_commands(tmp_path)

    assert first.keys() == second.keys()
    for key in first:
        a, b = first.get(key), second.get(key)
        assert (a.name, a.description, a.category, a.usage, a.cooldown_seconds,
                a.aliases, a.aliased_from) == \
               (b.name, b.description, b.category, b.usage, b.cooldown_seconds,
                b.aliases, b.aliased_from)


def test_summary_is_logged(tmp_path):
    _write(tmp_path, "General/ping.py", PING)
    _write(tmp_path, "General/help.py", """
        def execute(message, args, client):
            pass

        command = {"name": "help", "aliases": ["h"], "execute": execute}
    """)

    with capture_logs() as logs:
        load_commands(tmp_path)

    summary = [e for e in logs if e["event"] == "command_summary"]
    assert len(summary) == 1
    assert summary[0]["categories"] == {"General": ["help", "ping"]}
    assert summary[0]["aliases"] == 1
    assert summary[0]["total"] == 3
