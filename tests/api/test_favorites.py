"""Favorite poem endpoints."""

from tests.conftest import bearer, create_poem


class TestAdd:
    async def test_add_then_add_again(self, client, settings, student, poem):
        headers = bearer(student, settings)

        first = await client.post("/api/favorites", json={"poem_id": poem.id}, headers=headers)
        assert first.status_code == 201
        assert first.json()["message"] == "Poem added to favorites"
        assert first.json()["data"]["poem"]["title"] == poem.title

        second = await client.post("/api/favorites", json={"poem_id": poem.id}, headers=headers)
        assert second.status_code == 200
        assert second.json()["message"] == "Poem already in favorites"
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

        listing = await client.get("/api/favorites", headers=headers)
        assert listing.json()["data"]["pagination"]["total_items"] == 1

    async def test_unknown_poem(self, client, settings, student):
        response = await client.post("/api/favorites", json={"poem_id": 4242}, headers=bearer(student, settings))
        assert response.status_code == 404
        assert response.json()["message"] == "Poem not found"


class TestRemove:
    async def test_remove(self, client, settings, student, poem):
        headers = bearer(student, settings)
        await client.post("/api/favorites", json={"poem_id": poem.id}, headers=headers)

        response = await client.delete(f"/api/favorites/{poem.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Poem removed from favorites"

        response = await client.delete(f"/api/favorites/{poem.id}", headers=headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Favorite not found"

    async def test_favorites_are_per_user(self, client, settings, student, other_student, poem):
        await client.post("/api/favorites", json={"poem_id": poem.id}, headers=bearer(student, settings))

        response = await client.delete(f"/api/favorites/{poem.id}", headers=bearer(other_student, settings))
        assert response.status_code == 404
        check = await client.get(f"/api/favorites/check/{poem.id}", headers=bearer(student, settings))
        assert check.json()["data"]["is_favorite"] is True


class TestToggleAndCheck:
    async def test_toggle_round_trip(self, client, settings, student, poem):
        headers = bearer(student, settings)

        on = await client.post("/api/favorites/toggle", json={"poem_id": poem.id}, headers=headers)
        assert on.status_code == 200
        assert on.json()["data"] == {"poem_id": poem.id, "is_favorite": True, "action": "added"}
        assert on.json()["message"] == "Poem added to favorites"

        check = await client.get(f"/api/favorites/check/{poem.id}", headers=headers)
        assert check.json()["data"]["is_favorite"] is True

        off = await client.post("/api/favorites/toggle", json={"poem_id": poem.id}, headers=headers)
        assert off.json()["data"] == {"poem_id": poem.id, "is_favorite": False, "action": "removed"}
        assert off.json()["message"] == "Poem removed from favorites"

        check = await client.get(f"/api/favorites/check/{poem.id}", headers=headers)
        assert check.json()["data"] == {"poem_id": poem.id, "is_favorite": False}


class TestList:
    async def test_hides_deactivated_poems(self, client, settings, db_session, student, teacher, poem):
        retired = await create_poem(db_session, teacher, title="Retired")
        headers = bearer(student, settings)
        for poem_id in (poem.id, retired.id):
            await client.post("/api/favorites", json={"poem_id": poem_id}, headers=headers)

        await client.delete(f"/api/poems/{retired.id}", headers=bearer(teacher, settings))

        response = await client.get("/api/favorites", headers=headers)
        data = response.json()["data"]
        assert [f["poem_id"] for f in data["items"]] == [poem.id]
        assert data["pagination"]["total_items"] == 1

    async def test_requires_authentication(self, client):
        response = await client.get("/api/favorites")
        assert response.status_code == 401
