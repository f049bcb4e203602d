"""
Service-level tests for subscribe / list / unsubscribe against a real SQLite store.
"""

import pytest

from velox.core.errors import ConflictError, NotFoundError, StoreError, ValidationError
from velox.repositories.subscribers import SubscribersRepository
from velox.services import subscriptions
from velox.services.subscriptions import SubscriptionService, generate_unsubscribe_token


# ---------------------------------------------------------------------------
# Subscribe
# ---------------------------------------------------------------------------

async def test_subscribe_creates_one_row(service, repo):
    sub = await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})

    assert isinstance(sub.id, int)
    assert sub.name == "Jane Doe"
    assert sub.email == "jane@x.com"
    assert sub.is_active is True
    assert sub.subscribed_at is not None
    assert len(sub.unsubscribe_token) == 64
    assert await repo.count() == 1


async def test_subscribe_normalizes_email_and_trims_name(service):
    sub = await service.subscribe({"name": "  Jane Doe ", "email": "Jane.Doe@X.COM"})

    assert sub.name == "Jane Doe"
    assert sub.email == "jane.doe@x.com"


async def test_duplicate_email_conflicts(service, repo):
    await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})

    with pytest.raises(ConflictError):
        await service.subscribe({"name": "Janet", "email": "JANE@x.com"})

    assert await repo.count() == 1


async def test_resubscribe_after_unsubscribe_still_conflicts(service):
    sub = await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})
    await service.unsubscribe(sub.unsubscribe_token)

    with pytest.raises(ConflictError):
        await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})


@pytest.mark.parametrize("email", ["janex.com", "jane@", "jane doe@x.com", "@x.com", ""])
async def test_malformed_email_rejected_without_store_mutation(service, repo, email):
    with pytest.raises(ValidationError) as exc_info:
        await service.subscribe({"name": "Jane Doe", "email": email})

    assert [e["field"] for e in exc_info.value.errors] == ["email"]
    assert await repo.count() == 0


@pytest.mark.parametrize("name", ["J", "Jane123", "A" * 51, "   ", "Jane-Doe"])
async def test_invalid_names_rejected(service, name):
    with pytest.raises(ValidationError) as exc_info:
        await service.subscribe({"name": name, "email": "jane@x.com"})

    assert [e["field"] for e in exc_info.value.errors] == ["name"]


async def test_validation_lists_every_violated_field(service):
    with pytest.raises(ValidationError) as exc_info:
        await service.subscribe({"name": "J", "email": "nope"})

    fields = {e["field"] for e in exc_info.value.errors}
    assert fields == {"name", "email"}


async def test_missing_fields_are_validation_errors(service):
    with pytest.raises(ValidationError) as exc_info:
        await service.subscribe({})

    fields = {e["field"] for e in exc_info.value.errors}
    assert fields == {"name", "email"}


async def test_validation_runs_before_store_access(session):
    class ExplodingRepository(SubscribersRepository):
        async def get_by_email(self, email):
            raise AssertionError("store touched before validation")

    service = SubscriptionService(ExplodingRepository(session))
    with pytest.raises(ValidationError):
        await service.subscribe({"name": "Jane123", "email": "jane@x.com"})


async def test_lost_race_on_email_is_a_conflict(session, repo):
    """The pre-check misses a concurrent insert; the unique constraint must decide."""
    await repo.add("Jane Doe", "jane@x.com", generate_unsubscribe_token())

    class RacingRepository(SubscribersRepository):
        checks = 0

        async def exists(self, email):
            self.checks += 1
            # Pretend the row was not there yet on the first look
            if self.checks == 1:
                return False
            return await super().exists(email)

    service = SubscriptionService(RacingRepository(session))
    with pytest.raises(ConflictError):
        await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})

    assert await repo.count() == 1


async def test_token_collision_is_retried(service, repo, monkeypatch):
    first = await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})

    tokens = iter([first.unsubscribe_token, "b" * 64])
    monkeypatch.setattr(subscriptions, "generate_unsubscribe_token", lambda: next(tokens))

    second = await service.subscribe({"name": "John Doe", "email": "john@x.com"})

    assert second.unsubscribe_token == "b" * 64
    assert await repo.count() == 2


async def test_token_collision_gives_up_after_max_attempts(service, repo, monkeypatch):
    first = await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})
    taken = first.unsubscribe_token
    monkeypatch.setattr(subscriptions, "generate_unsubscribe_token", lambda: taken)

    with pytest.raises(StoreError):
        await service.subscribe({"name": "John Doe", "email": "john@x.com"})

    assert await repo.count() == 1


def test_tokens_are_random_hex():
    tokens = {generate_unsubscribe_token() for _ in range(50)}

    assert len(tokens) == 50
    for token in tokens:
        assert len(token) == 64
        int(token, 16)


# ---------------------------------------------------------------------------
# Unsubscribe
# ---------------------------------------------------------------------------

async def test_unsubscribe_is_one_way(service):
    sub = await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})

    await service.unsubscribe(sub.unsubscribe_token)

    with pytest.raises(NotFoundError):
        await service.unsubscribe(sub.unsubscribe_token)

    rows = await service.list_subscribers()
    assert [row.is_active for row in rows] == [False]


async def test_unsubscribe_unknown_token(service):
    with pytest.raises(NotFoundError):
        await service.unsubscribe(generate_unsubscribe_token())


async def test_unsubscribe_matches_token_exactly(service):
    sub = await service.subscribe({"name": "Jane Doe", "email": "jane@x.com"})

    with pytest.raises(NotFoundError):
        await service.unsubscribe(f" {sub.unsubscribe_token} ")

    await service.unsubscribe(sub.unsubscribe_token)


@pytest.mark.parametrize("token", [None, "", "   ", 42])
async def test_unsubscribe_requires_token(service, token):
    with pytest.raises(ValidationError) as exc_info:
        await service.unsubscribe(token)

    assert exc_info.value.errors[0]["field"] == "token"


# ---------------------------------------------------------------------------
# Listing & stats
# ---------------------------------------------------------------------------

async def test_listing_counts_and_order(service):
    people = [("Ann Lee", "ann@x.com"), ("Bob Ray", "bob@x.com"), ("Cy Twombly", "cy@x.com"), ("Di Fox", "di@x.com")]
    created = []
    for name, email in people:
        created.append(await service.subscribe({"name": name, "email": email}))

    await service.unsubscribe(created[0].unsubscribe_token)
    await service.unsubscribe(created[2].unsubscribe_token)

    rows = await service.list_subscribers()

    assert len(rows) == 4
    assert sum(1 for row in rows if row.is_active) == 2
    assert [row.email for row in rows] == ["di@x.com", "cy@x.com", "bob@x.com", "ann@x.com"]

    stats = await service.stats()
    assert (stats.total, stats.active, stats.inactive) == (4, 2, 2)


async def test_listing_empty_store(service):
    assert await service.list_subscribers() == []
