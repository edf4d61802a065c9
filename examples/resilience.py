from __future__ import annotations

import asyncio
import logging
import random

from vow import Promise, PromiseTimeoutError, delay, retry, timeout

logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")


def flaky_request() -> Promise[str]:
    """Fails two times out of three."""
    if random.random() < 2 / 3:
        return Promise.reject(ConnectionError("connection reset"))
    return delay(0.05).then(lambda _: "payload")


async def main() -> None:
    try:
        body = await retry(flaky_request, attempts=5, interval=0.1)
        print("got", body)
    except ConnectionError as exc:
        print("gave up:", exc)

    slow = delay(1).then(lambda _: "too late")
    try:
        await timeout(slow, 0.2)
    except PromiseTimeoutError as exc:
        print("timed out:", exc)


if __name__ == "__main__":
    asyncio.run(main())
