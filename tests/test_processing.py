"""
Tests for enqueuing image and video work
"""
from reagent.models import ProcessingQueueEntry, Project, ProjectImage

from tests.conftest import fetch_all, fetch_one, make_image, make_project


class TestGenerateAll:
    """POST /api/projects/{id}/generate"""

    def test_queues_every_image_and_marks_pending(self, client, user):
        project = make_project(user, package="starter", global_instructions="Warm evening light")
        first = make_image(project, 1, processing_status="failed")
        second = make_image(project, 2, attempt_number=3)

        response = client.post(f"/api/projects/{project.id}/generate")

        assert response.status_code == 200, response.text
        assert response.json()["queued"] == 2

        entries = {e.image_id: e for e in fetch_all(ProcessingQueueEntry)}
        assert set(entries) == {first.id, second.id}
        assert all(e.operation_type == "initial_processing" for e in entries.values())
        assert entries[first.id].payload == {
            "global_instructions": "Warm evening light",
            "attempt_number": 2,
        }
        assert entries[second.id].payload["attempt_number"] == 4

        assert fetch_one(Project, Project.id == project.id).status == "processing"
        statuses = {i.processing_status for i in fetch_all(ProjectImage)}
        assert statuses == {"pending"}

    def test_unpaid_project_redirects_without_queueing(self, client, user):
        project = make_project(user, package="pro", status="draft")
        make_image(project, 1)

        response = client.post(f"/api/projects/{project.id}/generate")

        assert response.status_code == 402
        assert response.headers["location"] == f"/payment/{project.id}"
        assert fetch_all(ProcessingQueueEntry) == []
        assert fetch_one(Project, Project.id == project.id).status == "draft"

    def test_no_images_is_rejected(self, client, user):
        project = make_project(user, status="paid")

        response = client.post(f"/api/projects/{project.id}/generate")

        assert response.status_code == 400
        assert response.json()["detail"] == "No images to process"

    def test_other_users_project_is_not_found(self, client, other_user):
        project = make_project(other_user, status="paid")
        make_image(project, 1)

        response = client.post(f"/api/projects/{project.id}/generate")

        assert response.status_code == 404
        assert fetch_all(ProcessingQueueEntry) == []


class TestTweak:
    """POST /api/images/{id}/tweak"""

    def test_tweak_records_instruction_and_queues(self, client, user):
        project = make_project(user, status="paid")
        image = make_image(project, 1, processing_status="completed")

        response = client.post(f"/api/images/{image.id}/tweak", json={"instruction": "Brighter sky"})

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["attempt_number"] == 2
        assert body["tweak_history"] == ["", "Brighter sky"]
        assert body["processing_status"] == "pending"

        [entry] = fetch_all(ProcessingQueueEntry)
        assert entry.operation_type == "tweak"
        assert entry.image_id == image.id
        assert entry.payload == {"instruction": "Brighter sky", "attempt_number": 2}

    def test_tweak_rejected_at_max_attempts(self, client, user):
        project = make_project(user, status="paid")
        image = make_image(project, 1, attempt_number=5, tweak_history=["", "a", "b", "c", "d"])

        response = client.post(f"/api/images/{image.id}/tweak", json={"instruction": "Once more"})

        assert response.status_code == 400
        assert fetch_all(ProcessingQueueEntry) == []
        stored = fetch_one(ProjectImage, ProjectImage.id == image.id)
        assert stored.attempt_number == 5
        assert stored.tweak_history == ["", "a", "b", "c", "d"]
        assert stored.processing_status == "pending"

    def test_blank_instruction_is_rejected(self, client, user):
        project = make_project(user, status="paid")
        image = make_image(project, 1)

        response = client.post(f"/api/images/{image.id}/tweak", json={"instruction": "   "})

        assert response.status_code == 400
        assert fetch_all(ProcessingQueueEntry) == []

    def test_unpaid_project_redirects(self, client, user):
        project = make_project(user, package="pro", status="draft")
        image = make_image(project, 1)

        response = client.post(f"/api/images/{image.id}/tweak", json={"instruction": "More green"})

        assert response.status_code == 402
        assert fetch_one(ProjectImage, ProjectImage.id == image.id).attempt_number == 1

    def test_other_users_image_is_not_found(self, client, other_user):
        project = make_project(other_user, status="paid")
        image = make_image(project, 1)

        response = client.post(f"/api/images/{image.id}/tweak", json={"instruction": "Hi"})

        assert response.status_code == 404


class TestVideo:
    """POST and GET /api/projects/{id}/video"""

    def test_generates_video_for_paid_pro_project(self, client, user):
        project = make_project(user, status="paid")
        make_image(project, 1)
        make_image(project, 2)

        response = client.post(f"/api/projects/{project.id}/video")

        assert response.status_code == 200
        assert response.json() == {"status": "filming", "video_status": "processing"}
        [entry] = fetch_all(ProcessingQueueEntry)
        assert entry.operation_type == "video_generation"
        assert entry.image_id is None
        assert entry.payload == {"package": "pro", "image_count": 2, "project_name": "Sea View Villa"}

    def test_starter_package_cannot_generate_video(self, client, user):
        project = make_project(user, package="starter", status="paid")

        response = client.post(f"/api/projects/{project.id}/video")

        assert response.status_code == 403
        assert fetch_all(ProcessingQueueEntry) == []

    def test_unpaid_project_redirects(self, client, user):
        project = make_project(user, package="unlimited", status="draft")

        response = client.post(f"/api/projects/{project.id}/video")

        assert response.status_code == 402
        assert fetch_one(Project, Project.id == project.id).video_status == "pending"

    def test_video_unavailable_until_completed(self, client, user):
        project = make_project(user, status="filming", video_url="https://cdn.example.com/v.mp4")

        assert client.get(f"/api/projects/{project.id}/video").status_code == 409

    def test_completed_video_is_returned(self, client, user):
        project = make_project(user, status="completed", video_url="https://cdn.example.com/v.mp4")

        response = client.get(f"/api/projects/{project.id}/video")

        assert response.status_code == 200
        assert response.json()["video_url"] == "https://cdn.example.com/v.mp4"
