"""Request handling vs. the dispatch lock: a waiting request must not stall the event loop."""

import asyncio
import threading
import time


def _hold_lock(ctx, held: threading.Event, seconds: float) -> threading.Thread:
    def run():
        with ctx.lock:
            held.set()
            time.sleep(seconds)

    thread = threading.Thread(target=run)
    thread.start()
    return thread


async def _worst_loop_latency(request: asyncio.Task) -> float:
    worst = 0.0
    while not request.done():
        started = time.perf_counter()
        await asyncio.sleep(0.01)
        worst = max(worst, time.perf_counter() - started)
    return worst


async def test_list_waiting_on_lock_keeps_loop_responsive(client, ctx):
    held = threading.Event()
    holder = _hold_lock(ctx, held, 0.8)
    assert held.wait(1.0)

    request = asyncio.create_task(client.get("/api/v1/orders"))
    worst = await _worst_loop_latency(request)
    holder.join()

    assert (await request).status_code == 200
    assert worst < 0.3


async def test_geocoding_handler_waiting_on_lock_keeps_loop_responsive(
    client, ctx, order_body,
):
    held = threading.Event()
    holder = _hold_lock(ctx, held, 0.8)
    assert held.wait(1.0)

    request = asyncio.create_task(client.post("/api/v1/orders", json=order_body))
    worst = await _worst_loop_latency(request)
    holder.join()

    assert (await request).status_code == 201
    assert worst < 0.3
