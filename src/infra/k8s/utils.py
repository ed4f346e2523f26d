"""Helpers for driving the async Kubernetes layer from synchronous code."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any


def run_sync[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion and return its result.

    The CLI and the prober are synchronous, while the resolvers and the
    namespace fan-out are async. Called from inside a running event loop,
    the coroutine gets a fresh loop on a worker thread instead.

    Example:
        from src.infra.k8s import KubectlContextResolver, run_sync

        context = run_sync(KubectlContextResolver().get_current_context())
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()
