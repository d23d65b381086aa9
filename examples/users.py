from __future__ import annotations

import asyncio

from pydantic import BaseModel

from flowbox import Box


class User(BaseModel):
    id: int
    first_name: str
    last_name: str


USERS: list[User | None] = [
    User(id=1, first_name="Jimmy", last_name="Bananas"),
    User(id=2, first_name="Jackie", last_name="Mangoes"),
    User(id=3, first_name="Johnny", last_name="Apples"),
    None,
]


async def get_all_users() -> list[User | None]:
    await asyncio.sleep(0.1)
    return USERS


async def get_user(user_id: int) -> User | None:
    await asyncio.sleep(0.1)
    if user_id < 0:
        raise ValueError(f"Invalid user id: {user_id}")
    return next((u for u in USERS if u is not None and u.id == user_id), None)


def full_name(user: User) -> str:
    return f"{user.first_name} {user.last_name}"


async def list_names() -> list[str]:
    # Missing users keep their slot as None and are replaced afterwards
    return await (
        Box.from_producer(get_all_users)
        .traverse(full_name)
        .map(lambda names: [name or "Unavailable user" for name in names])
        .run()
    )


async def describe(user_id: int) -> str:
    return await (
        Box.from_producer(lambda: get_user(user_id))
        .map(full_name)
        .fold(
            lambda err: f"Lookup failed: {err}",
            lambda _: "No such user",
            lambda name: f"Found {name}",
        )
    )


async def main() -> None:
    print(await list_names())
    for user_id in (2, 9, -1):
        print(await describe(user_id))


if __name__ == "__main__":
    asyncio.run(main())
