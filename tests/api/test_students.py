"""Student roster endpoints for teachers and admins."""

from tests.conftest import TEST_PASSWORD, bearer, create_user

NEW_STUDENT = {
    "email": "Newbie@Example.com",
    "password": TEST_PASSWORD,
    "name": "  Nina Newbie ",
    "level": "beginner",
}


class TestList:
    async def test_teacher_sees_own_class(self, client, settings, teacher, student, other_student):
        response = await client.get("/api/users/students", headers=bearer(teacher, settings))
        assert response.status_code == 200
        assert [s["id"] for s in response.json()["data"]["items"]] == [student.id]

    async def test_teacher_cannot_pick_other_class(self, client, settings, teacher):
        response = await client.get("/api/users/students?class_id=class-b", headers=bearer(teacher, settings))
        assert response.status_code == 403

    async def test_admin_sees_all_and_filters(self, client, settings, admin, student, other_student):
        headers = bearer(admin, settings)
        response = await client.get("/api/users/students", headers=headers)
        assert {s["id"] for s in response.json()["data"]["items"]} == {student.id, other_student.id}

        response = await client.get("/api/users/students?class_id=class-b", headers=headers)
        assert [s["id"] for s in response.json()["data"]["items"]] == [other_student.id]

        response = await client.get("/api/users/students?search=alice", headers=headers)
        assert [s["id"] for s in response.json()["data"]["items"]] == [student.id]

    async def test_inactive_hidden_unless_requested(self, client, settings, db_session, admin, student):
        gone = await create_user(db_session, email="gone@example.com", is_active=False)
        headers = bearer(admin, settings)

        response = await client.get("/api/users/students", headers=headers)
        assert gone.id not in {s["id"] for s in response.json()["data"]["items"]}

        response = await client.get("/api/users/students?include_inactive=true", headers=headers)
        assert gone.id in {s["id"] for s in response.json()["data"]["items"]}

    async def test_students_forbidden(self, client, settings, student):
        response = await client.get("/api/users/students", headers=bearer(student, settings))
        assert response.status_code == 403


class TestCreate:
    async def test_teacher_student_joins_teacher_class(self, client, settings, teacher):
        response = await client.post("/api/users/students", json=NEW_STUDENT, headers=bearer(teacher, settings))
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Student created successfully"
        assert body["data"]["email"] == "newbie@example.com"
        assert body["data"]["name"] == "Nina Newbie"
        assert body["data"]["role"] == "student"
        assert body["data"]["class_id"] == "class-a"

    async def test_created_student_can_log_in(self, client, settings, admin):
        await client.post(
            "/api/users/students", json={**NEW_STUDENT, "class_id": "class-z"}, headers=bearer(admin, settings)
        )
        response = await client.post(
            "/api/auth/login", json={"email": "newbie@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["class_id"] == "class-z"

    async def test_weak_password(self, client, settings, admin):
        response = await client.post(
            "/api/users/students", json={**NEW_STUDENT, "password": "lowercase1"}, headers=bearer(admin, settings)
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "password"

    async def test_duplicate_email(self, client, settings, admin, student):
        response = await client.post(
            "/api/users/students", json={**NEW_STUDENT, "email": student.email}, headers=bearer(admin, settings)
        )
        assert response.status_code == 409


class TestUpdateAndDeactivate:
    async def test_teacher_updates_own_student(self, client, settings, teacher, student):
        response = await client.put(
            f"/api/users/students/{student.id}",
            json={"level": "advanced"},
            headers=bearer(teacher, settings),
        )
        assert response.status_code == 200
        assert response.json()["data"]["level"] == "advanced"
        assert response.json()["data"]["class_id"] == "class-a"

    async def test_teacher_cannot_touch_other_class(self, client, settings, teacher, other_student):
        response = await client.put(
            f"/api/users/students/{other_student.id}",
            json={"level": "advanced"},
            headers=bearer(teacher, settings),
        )
        assert response.status_code == 403

    async def test_teacher_cannot_move_student_out(self, client, settings, teacher, student):
        response = await client.put(
            f"/api/users/students/{student.id}",
            json={"class_id": "class-b"},
            headers=bearer(teacher, settings),
        )
        assert response.status_code == 403

    async def test_non_student_is_not_found(self, client, settings, admin, teacher):
        response = await client.put(
            f"/api/users/students/{teacher.id}", json={"name": "Nope"}, headers=bearer(admin, settings)
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Student not found"

    async def test_deactivate_locks_student_out(self, client, settings, teacher, student):
        response = await client.delete(f"/api/users/students/{student.id}", headers=bearer(teacher, settings))
        assert response.status_code == 200
        assert response.json()["message"] == "Student deactivated successfully"
        assert response.json()["data"]["is_active"] is False

        response = await client.get("/api/auth/profile", headers=bearer(student, settings))
        assert response.status_code == 401

        response = await client.post("/api/auth/login", json={"email": student.email, "password": TEST_PASSWORD})
        assert response.status_code == 401
