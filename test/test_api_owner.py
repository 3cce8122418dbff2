import uuid

import asyncpg  # type: ignore

from classifieds.services.conversations import OPENING_MESSAGE
from test.factories import GridListingFactory, listing_row


def owned(session, **kwargs):
    return GridListingFactory.build(user_id=session.user_id, **kwargs)


async def test_my_ads_requires_login(client, fake_pool):
    response = await client.get("/api/my-ads")
    assert response.status_code == 401
    fake_pool.conn.fetch.assert_not_awaited()


async def test_my_ads_with_status_filter(client, fake_pool, user_session):
    ad = owned(user_session, status="paused")
    fake_pool.conn.fetch.return_value = [listing_row(ad)]

    response = await client.get("/api/my-ads", params={"status": "paused"})

    assert response.status_code == 200
    assert response.json()[0]["id"] == ad.id
    args = fake_pool.conn.fetch.await_args.args
    assert "a.user_id = $1 AND a.status = $2" in args[0]
    assert args[1:] == (user_session.user_id, "paused")


async def test_status_change_on_missing_ad(client, fake_pool, user_session):
    fake_pool.conn.fetchrow.return_value = None
    response = await client.patch("/api/my-ads/nope/status", json={"status": "paused"})
    assert response.status_code == 404


async def test_status_change_on_someone_elses_ad(client, fake_pool, user_session):
    fake_pool.conn.fetchrow.return_value = listing_row(GridListingFactory.build(user_id="other"))

    response = await client.patch("/api/my-ads/x/status", json={"status": "paused"})

    assert response.status_code == 403
    assert fake_pool.conn.fetchrow.await_count == 1


async def test_status_change(client, fake_pool, user_session):
    ad = owned(user_session)
    paused = ad.model_copy(update={"status": "paused"})
    fake_pool.conn.fetchrow.side_effect = [listing_row(ad), listing_row(paused)]

    response = await client.patch(f"/api/my-ads/{ad.id}/status", json={"status": "paused"})

    assert response.status_code == 200
    assert response.json()["status"] == "paused"
    query, *values = fake_pool.conn.fetchrow.await_args_list[1].args
    assert query.startswith("UPDATE ads SET status = $1, updated_at = NOW()")
    assert values == ["paused", ad.id]


async def test_owner_cannot_set_moderation_statuses(client, fake_pool, user_session):
    response = await client.patch("/api/my-ads/x/status", json={"status": "rejected"})
    assert response.status_code == 422
    fake_pool.conn.fetchrow.assert_not_awaited()


async def test_duplicate(client, fake_pool, user_session):
    ad = owned(user_session, title="Bicicleta aro 29", admin_approved=True)
    copy = ad.model_copy(
        update={"id": str(uuid.uuid4()), "title": "Bicicleta aro 29 (Copy)", "status": "pending"}
    )
    fake_pool.conn.fetchrow.side_effect = [listing_row(ad), listing_row(copy)]

    response = await client.post(f"/api/my-ads/{ad.id}/duplicate")

    assert response.status_code == 201
    assert response.json()["id"] == copy.id
    query, *values = fake_pool.conn.fetchrow.await_args_list[1].args
    assert query.startswith("INSERT INTO ads")
    assert "Bicicleta aro 29 (Copy)" in values
    assert "pending" in values
    assert ad.photos in values


async def test_renew(client, fake_pool, user_session):
    ad = owned(user_session, status="expired")
    fake_pool.conn.fetchrow.side_effect = [listing_row(ad), listing_row(ad.model_copy(update={"status": "active"}))]

    response = await client.post(f"/api/my-ads/{ad.id}/renew")

    assert response.status_code == 200
    query, *values = fake_pool.conn.fetchrow.await_args_list[1].args
    assert "end_date = $1, status = $2" in query
    assert values[1] == "active"


async def test_edit_requires_changes(client, fake_pool, user_session):
    response = await client.patch("/api/my-ads/x", json={})
    assert response.status_code == 400


async def test_edit(client, fake_pool, user_session):
    ad = owned(user_session)
    fake_pool.conn.fetchrow.side_effect = [listing_row(ad), listing_row(ad)]

    response = await client.patch(f"/api/my-ads/{ad.id}", json={"price": "10.00", "contactInfo": {"phone": "1"}})

    assert response.status_code == 200
    query, *values = fake_pool.conn.fetchrow.await_args_list[1].args
    assert "price = $1, contact_info = $2" in query
    assert values[1] == '{"phone": "1"}'


async def test_delete(client, fake_pool, user_session):
    ad = owned(user_session)
    fake_pool.conn.fetchrow.return_value = listing_row(ad)

    response = await client.delete(f"/api/my-ads/{ad.id}")

    assert response.status_code == 200
    fake_pool.conn.execute.assert_awaited_once_with("DELETE FROM ads WHERE id = $1", ad.id)


async def test_favorites_list(client, fake_pool, user_session):
    saved = GridListingFactory.build()
    fake_pool.conn.fetch.return_value = [listing_row(saved)]

    response = await client.get("/api/favorites")

    data = response.json()
    assert data["ids"] == [saved.id]
    assert data["ads"][0]["is_favorited"] is True


async def test_add_favorite_is_idempotent_sql(client, fake_pool, user_session):
    ad_id = str(uuid.uuid4())
    response = await client.post("/api/favorites", json={"ad_id": ad_id})

    assert response.status_code == 200
    query, *values = fake_pool.conn.execute.await_args.args
    assert "ON CONFLICT (user_id, ad_id) DO NOTHING" in query
    assert values == [user_session.user_id, ad_id]


async def test_add_favorite_for_missing_ad(client, fake_pool, user_session):
    fake_pool.conn.execute.side_effect = asyncpg.ForeignKeyViolationError("fk")
    response = await client.post("/api/favorites", json={"ad_id": str(uuid.uuid4())})
    assert response.status_code == 404


async def test_remove_favorite(client, fake_pool, user_session):
    response = await client.delete("/api/favorites/abc")
    assert response.status_code == 200
    assert fake_pool.conn.execute.await_args.args[1:] == (user_session.user_id, "abc")


async def test_contact_opens_a_conversation(client, fake_pool, user_session):
    ad = GridListingFactory.build(user_id="seller_1")
    new_id = uuid.uuid4()
    fake_pool.conn.fetchrow.side_effect = [listing_row(ad), None, {"id": new_id}]

    response = await client.post("/api/messages/contact", json={"ad_id": ad.id})

    assert response.status_code == 200
    assert response.json() == {"message_id": str(new_id), "created": True}
    query, *values = fake_pool.conn.fetchrow.await_args_list[2].args
    assert query.startswith("INSERT INTO messages")
    assert values == [OPENING_MESSAGE, user_session.user_id, "seller_1", ad.id, False]


async def test_contact_reuses_the_conversation(client, fake_pool, user_session):
    ad = GridListingFactory.build(user_id="seller_1")
    existing = uuid.uuid4()
    fake_pool.conn.fetchrow.side_effect = [listing_row(ad), {"id": existing}]

    response = await client.post("/api/messages/contact", json={"ad_id": ad.id})

    assert response.json() == {"message_id": str(existing), "created": False}
    assert fake_pool.conn.fetchrow.await_count == 2


async def test_contact_on_own_ad(client, fake_pool, user_session):
    fake_pool.conn.fetchrow.return_value = listing_row(owned(user_session))
    response = await client.post("/api/messages/contact", json={"ad_id": "x"})
    assert response.status_code == 400


async def test_unread_messages(client, fake_pool, user_session):
    fake_pool.conn.fetch.return_value = [
        {
            "id": uuid.uuid4(),
            "sender_id": "buyer",
            "receiver_id": user_session.user_id,
            "ad_id": uuid.uuid4(),
            "message": OPENING_MESSAGE,
            "read": False,
            "created_at": None,
            "sender_name": "Ana",
            "ad_title": "Sofá",
        }
    ]

    response = await client.get("/api/messages", params={"unread": "true"})

    assert response.status_code == 200
    assert response.json()[0]["sender_name"] == "Ana"
    assert fake_pool.conn.fetch.await_args.args[1:] == (user_session.user_id, False)


async def test_mark_read_of_someone_elses_message(client, fake_pool, user_session):
    fake_pool.conn.fetchrow.return_value = None
    response = await client.patch("/api/messages/abc/read")
    assert response.status_code == 404
