#!/usr/bin/env python3
"""Walk through a quest lifecycle against a simulated backend.

Runs a fetch, an optimistic mutation, and (with ``--fail``) a rejected
mutation that rolls back, printing the record after every store change.

Usage::

    python scripts/quest_demo.py --latency 0.2 --fail --debug
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyquest import DataStore, QuestCommand, QuestConfig, QuestEngine, Resolver, ResourceRecord  # noqa: E402


def _build_resolver(latency: float, fail: bool) -> Resolver:
    async def get(_query: Any) -> list[str]:
        await asyncio.sleep(latency)
        return ["write docs", "ship release"]

    def add(query: dict[str, Any]) -> list[Any]:
        current = list(query["data"] or [])

        async def optimistic() -> list[str]:
            return [*current, query["title"]]

        async def confirmed() -> list[str]:
            await asyncio.sleep(latency)
            if fail:
                raise ConnectionError("server rejected the update")
            return [*current, f"{query['title']} (saved)"]

        return [optimistic(), confirmed()]

    return Resolver(key="todos", get=get, mutations={"add": add})


def _print_change(command: QuestCommand, record: ResourceRecord) -> None:
    error = f"{type(record.error).__name__}: {record.error}" if record.error is not None else None
    print(f"{command.kind:<8} loading={record.loading!s:<5} completed={record.completed!s:<5} data={record.data} error={error}")


async def _run(args: argparse.Namespace) -> int:
    store = DataStore()
    store.subscribe(_print_change)
    engine = QuestEngine(store, config=QuestConfig.from_env(trace_enabled=args.debug))
    resolver = _build_resolver(args.latency, args.fail)

    print("-- fetch")
    await engine.run_quest(resolver.key, lambda: resolver.get(None))

    print("-- optimistic add")
    add = resolver.mutation("add")
    data = engine.get_record(resolver.key).data
    record = await engine.run_quest(resolver.key, lambda: add({"title": "celebrate", "data": data}))

    return 1 if record.error is not None else 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--latency", type=float, default=0.1, help="Simulated backend latency in seconds")
    parser.add_argument("--fail", action="store_true", help="Make the confirmed update fail")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging with payload traces")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
