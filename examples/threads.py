from __future__ import annotations

import threading
import time

from vow import Deferred, ThreadPoolScheduler, Trace, all_of, configure


def slow_square(scheduler: ThreadPoolScheduler, n: int) -> Deferred[int]:
    deferred: Deferred[int] = Deferred(scheduler)

    def work() -> None:
        time.sleep(0.01 * (5 - n))
        deferred.resolve(n * n)

    scheduler.call_soon(work)
    return deferred


if __name__ == "__main__":
    trace = Trace()
    configure(trace=trace)

    with ThreadPoolScheduler(max_workers=4) as scheduler:
        done = threading.Event()
        squares = all_of([slow_square(scheduler, n).promise for n in range(5)], scheduler=scheduler)
        squares.then(print).finally_(done.set)
        done.wait(5)

    print(f"{len(trace)} lifecycle events, {len(trace.find_all(action='dispatch'))} dispatches")
