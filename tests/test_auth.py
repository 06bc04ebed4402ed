"""
Tests for profiles, authentication, health and AI descriptions
"""
import pytest

from reagent import description
from reagent.auth import create_jwt, decode_jwt, ensure_user_profile
from reagent.database import async_session
from reagent.models import Project, User

from tests.conftest import fetch_all, run


async def _ensure(email, name="", google_id=None):
    async with async_session() as db:
        user, created = await ensure_user_profile(db, email, name, google_id)
        return user.id, created


class TestProfiles:
    """First sign-in creates a profile and a free trial project"""

    def test_new_profile_gets_free_trial_project(self):
        user_id, created = run(_ensure("new@example.com", "New Agent", "g-123"))

        assert created is True
        [user] = fetch_all(User)
        assert user.google_id == "g-123"
        [project] = fetch_all(Project, Project.user_id == user_id)
        assert project.name == "Free Trial Project"
        assert project.package == "starter"
        assert project.status == "draft"

    def test_existing_profile_is_reused(self):
        first_id, _ = run(_ensure("new@example.com"))
        second_id, created = run(_ensure("new@example.com", google_id="g-9"))

        assert created is False
        assert second_id == first_id
        assert len(fetch_all(Project)) == 1
        assert fetch_all(User)[0].google_id == "g-9"


class TestTokens:
    def test_round_trip(self):
        payload = decode_jwt(create_jwt("u1", "a@example.com"))
        assert payload["sub"] == "u1"
        assert payload["email"] == "a@example.com"

    def test_garbage_token_is_rejected(self):
        assert decode_jwt("not-a-token") is None

    def test_cookie_authenticates(self, anon_client, user):
        anon_client.cookies.set("reagent_token", create_jwt(user.id, user.email))

        response = anon_client.get("/me")

        assert response.status_code == 200
        assert response.json()["email"] == "owner@example.com"

    def test_anonymous_is_unauthorized(self, anon_client):
        response = anon_client.get("/me")

        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized"

    def test_logout_clears_cookie(self, client):
        response = client.get("/auth/logout", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "http://localhost:3000"
        assert "reagent_token" in response.headers.get("set-cookie", "")


class TestHealth:
    def test_reports_database_and_integrations(self, anon_client):
        data = anon_client.get("/health").json()

        assert data["status"] == "ok"
        assert data["database"]["reachable"] is True
        assert data["integrations"]["payments"] is True
        assert data["integrations"]["ai_description"] is True


class TestGenerateDescription:
    """POST /api/generate-description"""

    def test_returns_generated_text(self, client, monkeypatch):
        prompts = []

        def fake_generate(prompt):
            prompts.append(prompt)
            return "A charming seaside villa."

        monkeypatch.setattr(description, "generate_description", fake_generate)

        response = client.post(
            "/api/generate-description",
            json={"projectName": "Sea View Villa", "address": "3 Shore Lane", "imageCount": 8},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "description": "A charming seaside villa."}
        [prompt] = prompts
        assert '"Sea View Villa" located at 3 Shore Lane' in prompt
        assert "- Number of images: 8" in prompt

    def test_name_is_required(self, client):
        response = client.post("/api/generate-description", json={"address": "3 Shore Lane"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Project name is required"

    def test_model_failure_is_500(self, client, monkeypatch):
        def broken(prompt):
            raise RuntimeError("quota exceeded")

        monkeypatch.setattr(description, "generate_description", broken)

        response = client.post("/api/generate-description", json={"projectName": "Villa"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to generate description"

    @pytest.mark.parametrize("count,expected", [(None, "multiple"), (0, "multiple"), (3, "3")])
    def test_prompt_image_count(self, count, expected):
        prompt = description.build_prompt("Villa", image_count=count)
        assert f"- Number of images: {expected}" in prompt
