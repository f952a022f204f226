from __future__ import annotations

from talentbridge.config import Settings, get_settings
from talentbridge.db.seed import seed_default_questions
from talentbridge.db.session import Store


def ensure_data_directories(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)


async def init_database(store: Store) -> dict[str, int]:
    ensure_data_directories(store.settings)
    await store.create_all()

    async with store.elevated() as repo:
        inserted, _ = await seed_default_questions(repo)
    return {"seeded_questions": inserted}
