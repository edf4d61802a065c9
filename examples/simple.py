from __future__ import annotations

import asyncio

from vow import Promise, all_settled


def fetch_profile(user_id: int) -> Promise[dict]:
    def executor(resolve, reject):
        if user_id < 0:
            reject(ValueError(f"unknown user {user_id}"))
            return
        resolve({"id": user_id, "name": f"user-{user_id}"})

    return Promise(executor)


def greet(profile: dict) -> str:
    return f"Hello, {profile['name']}!"


async def main() -> None:
    greeting = await fetch_profile(7).then(greet)
    print(greeting)

    fallback = await fetch_profile(-1).then(greet).catch(lambda exc: f"Fallback ({exc})")
    print(fallback)

    outcomes = await all_settled([fetch_profile(1), fetch_profile(-2)])
    for outcome in outcomes:
        print(outcome.status, outcome.value or outcome.reason)


if __name__ == "__main__":
    asyncio.run(main())
