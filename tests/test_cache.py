from pathlib import Path

from texcompose.core.cache import BuildCache
from texcompose.core.state import BuildState


def _state(root: str, *subfiles: str) -> BuildState:
    state = BuildState(Path(root))
    for subfile in subfiles:
        state.add_subfile(Path(subfile))
    return state


def test_state_is_reachable_from_root_and_subfiles() -> None:
    cache = BuildCache()
    state = _state("/work/main.tex", "/work/intro.tex")

    entry = cache.put(state)

    assert cache.get_state("/work/main.tex") is state
    assert cache.get_state(Path("/work/intro.tex")) is state
    assert entry.version == 1
    assert len(cache) == 1
    assert "/work/intro.tex" in cache


def test_replacing_root_bumps_version_and_drops_stale_subfiles() -> None:
    cache = BuildCache()
    cache.put(_state("/work/main.tex", "/work/old.tex"))

    entry = cache.put(_state("/work/main.tex", "/work/new.tex"))

    assert entry.version == 2
    assert cache.get("/work/old.tex") is None
    assert cache.get("/work/new.tex") is entry


def test_subfile_claimed_by_new_root_evicts_previous_root() -> None:
    cache = BuildCache()
    cache.put(_state("/work/a.tex", "/work/shared.tex"))

    new = _state("/work/b.tex", "/work/shared.tex")
    cache.put(new)

    assert cache.get_state("/work/a.tex") is None
    assert cache.get_state("/work/shared.tex") is new
    assert cache.states() == [new]


def test_invalidate_and_clear() -> None:
    cache = BuildCache()
    cache.put(_state("/work/a.tex", "/work/a1.tex"))
    cache.put(_state("/work/b.tex"))

    assert cache.invalidate("/work/a1.tex") is True
    assert cache.invalidate("/work/a1.tex") is False
    assert cache.get("/work/a.tex") is None
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
