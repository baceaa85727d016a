from __future__ import annotations

from pathlib import Path

import pytest

from adapters.script_files import FileScriptSource
from core.config import Config, FilterConfig
from core.errors import ScriptLoadError, ScriptRuntimeError
from core.filters import Filter
from core.models import Transaction
from core.runtime import FilterRuntime
from core.system import FilterSystem

MANAGER_SCRIPT = """
function filter(tx)
    return tx.from == "0xDEADBEEF"
end

return {
    filter = filter
}
"""


class MemoryScripts:
    def __init__(self, scripts: dict[str, str]) -> None:
        self._scripts = {Path(path): source for path, source in scripts.items()}
        self.reads: list[Path] = []

    def read(self, path: Path) -> str:
        self.reads.append(Path(path))
        try:
            return self._scripts[Path(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None


def _config(**chains: list[tuple[str, str]]) -> Config:
    return Config(
        chains={
            chain: tuple(FilterConfig(name=name, script=Path(script)) for name, script in entries)
            for chain, entries in chains.items()
        }
    )


def _txs() -> list[Transaction]:
    return [
        Transaction(chain="uni-5", sender="0xDEADBEEF", to="0xBEEFFEEF", amount=0),
        Transaction(chain="uni-5", sender="0xBEEFFEEF", to="0xDEADDEAD", amount=0),
    ]


def test_filter_system_from_files(tmp_path: Path) -> None:
    (tmp_path / "filters").mkdir()
    (tmp_path / "filters" / "uni-5-manager.lua").write_text(MANAGER_SCRIPT, encoding="utf-8")
    config = _config(**{"uni-5": [("Testnet Manager", "filters/uni-5-manager.lua")]})

    runtime = FilterRuntime(scripts=FileScriptSource(tmp_path))
    system = runtime.load(config)
    filtered = system.filter(_txs())

    assert len(filtered) == 1
    assert filtered[0].sender == "0xDEADBEEF"
    assert filtered[0].to == "0xBEEFFEEF"


def test_default_source_reads_paths_directly(tmp_path: Path) -> None:
    script = tmp_path / "manager.lua"
    script.write_text(MANAGER_SCRIPT, encoding="utf-8")

    system = FilterRuntime().load(_config(main=[("Manager", str(script))]))

    assert [item.name for item in system] == ["filter"]


def test_load_registers_every_exported_function() -> None:
    scripts = MemoryScripts(
        {
            "a.lua": "return { big = function(tx) return tx.amount > 100 end,"
            " self_send = function(tx) return tx.from == tx.to end }",
            "b.lua": "return { manager = function(tx) return tx.from == '0xDEADBEEF' end, limit = 5 }",
        }
    )
    config = _config(**{"uni-5": [("Amounts", "a.lua")], "juno-1": [("Managers", "b.lua")]})

    system = FilterRuntime(scripts=scripts).load(config)

    assert system.ready
    assert len(system) == 3
    assert [(item.chain, item.label, item.name) for item in system] == [
        ("uni-5", "Amounts", "big"),
        ("uni-5", "Amounts", "self_send"),
        ("juno-1", "Managers", "manager"),
    ]
    assert system.chains == ["uni-5", "juno-1"]
    assert all(item.runtime is system.runtime for item in system)


def test_any_filter_keeps_value() -> None:
    scripts = MemoryScripts(
        {
            "a.lua": "return { big = function(tx) return tx.amount > 100 end }",
            "b.lua": "return { manager = function(tx) return tx.from == '0xDEADBEEF' end }",
        }
    )
    system = FilterRuntime(scripts=scripts).load(_config(main=[("a", "a.lua"), ("b", "b.lua")]))

    assert system.filter_one({"from": "0xDEADBEEF", "amount": 1}) is True
    assert system.filter_one({"from": "0x1", "amount": 500}) is True
    assert system.filter_one({"from": "0x1", "amount": 1}) is False


def test_every_filter_runs_even_after_a_match() -> None:
    runtime = FilterRuntime(
        scripts=MemoryScripts(
            {
                "count.lua": """
                calls = 0
                return {
                    first = function(tx) calls = calls + 1; return true end,
                    second = function(tx) calls = calls + 1; return false end,
                }
                """,
            }
        )
    )
    system = runtime.load(_config(main=[("count", "count.lua")]))
    (_, calls), = runtime.compile_module("return { calls = function() return calls end }")

    assert system.filter_one({"amount": 1}) is True
    assert calls() == 2


def test_empty_system_keeps_nothing() -> None:
    system = FilterRuntime().load(Config())

    assert len(system) == 0
    assert system.filter_one(_txs()[0]) is False
    assert system.filter(_txs()) == []


def test_filter_preserves_order_and_identity() -> None:
    scripts = MemoryScripts({"even.lua": "return { even = function(r) return r.n % 2 == 0 end }"})
    system = FilterRuntime(scripts=scripts).load(_config(main=[("even", "even.lua")]))
    records = [{"n": n} for n in range(6)]

    kept = system.filter(records)

    assert kept == [{"n": 0}, {"n": 2}, {"n": 4}]
    assert all(item is records[n] for item, n in zip(kept, (0, 2, 4)))
    assert system.filter(records) == kept


def test_batch_failure_returns_nothing() -> None:
    scripts = MemoryScripts(
        {"strict.lua": "return { strict = function(r) if r.bad then error('bad record') end return true end }"}
    )
    system = FilterRuntime(scripts=scripts).load(_config(main=[("strict", "strict.lua")]))

    with pytest.raises(ScriptRuntimeError, match="bad record"):
        system.filter([{"n": 1}, {"n": 2, "bad": True}, {"n": 3}])


def test_chain_selection_limits_filters() -> None:
    scripts = MemoryScripts(
        {
            "yes.lua": "return { yes = function(r) return true end }",
            "no.lua": "return { no = function(r) return false end }",
        }
    )
    system = FilterRuntime(scripts=scripts).load(_config(open=[("yes", "yes.lua")], closed=[("no", "no.lua")]))
    records = [{"n": 1}, {"n": 2}]

    assert system.filter(records) == records
    assert system.filter(records, chain="open") == records
    assert system.filter(records, chain="closed") == []
    assert system.filter(records, chain="unknown") == []


def test_missing_script_fails_load(tmp_path: Path) -> None:
    runtime = FilterRuntime(scripts=FileScriptSource(tmp_path))

    with pytest.raises(ScriptLoadError) as excinfo:
        runtime.load(_config(main=[("ghost", "filters/missing.lua")]))
    assert excinfo.value.path == Path("filters/missing.lua")


def test_load_is_atomic_on_later_failure() -> None:
    scripts = MemoryScripts(
        {
            "good.lua": "return { good = function(r) return true end }",
            "bad.lua": "return { bad = function(r) return true end",
        }
    )
    runtime = FilterRuntime(scripts=scripts)

    with pytest.raises(ScriptLoadError, match="bad.lua"):
        runtime.load(_config(main=[("good", "good.lua"), ("bad", "bad.lua")]))
    assert scripts.reads == [Path("good.lua"), Path("bad.lua")]


def test_sealed_system_rejects_new_filters() -> None:
    runtime = FilterRuntime()
    system = runtime.load(Config())
    (name, function), = runtime.compile_module("return { late = function(r) return true end }")

    with pytest.raises(RuntimeError):
        system.add(Filter(name, function, runtime))


def test_system_rejects_foreign_filters_and_unsealed_use() -> None:
    runtime = FilterRuntime()
    other = FilterRuntime()
    (name, function), = other.compile_module("return { foreign = function(r) return true end }")
    system = FilterSystem(runtime)

    with pytest.raises(ValueError):
        system.add(Filter(name, function, other))
    with pytest.raises(RuntimeError):
        system.filter_one({"n": 1})
