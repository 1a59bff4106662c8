import asyncio
import sys
import os

# Add the parent directory to the path so we can import our models
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.firestore import get_db
from app.models.project import Project, ProjectStatus, Revision
from app.models.user import User, UserRole
from app.services.comments import add_comment


def seed_platform():
    print("🌱 Starting EditoHub Seeding...")
    db = get_db()

    # 1. Demo client and editor profiles
    # Note: the uids should match real Firebase Auth accounts if you want to sign in as them.
    client_uid = "demo-client-001"
    editor_uid = "demo-editor-001"

    client = User(uid=client_uid, email="client@editohub.dev", display_name="Demo Client",
                  role=UserRole.CLIENT, phone_number="+919800000000")
    editor = User(uid=editor_uid, email="editor@editohub.dev", display_name="Demo Editor",
                  role=UserRole.EDITOR)
    db.collection("users").document(client_uid).set(client.to_document())
    db.collection("users").document(editor_uid).set(editor.to_document())
    print(f"✅ Users created: {client.email}, {editor.email}")

    # 2. A project already in review, with its first cut
    project_id = "demo-project-001"
    revision_id = "demo-revision-001"

    revision = Revision(project_id=project_id, version=1, uploaded_by=editor_uid,
                        video_url="https://storage.googleapis.com/editohub-demo/v1_teaser.mp4")
    db.collection("revisions").document(revision_id).set(revision.to_document(exclude={"id"}))

    project = Project(
        name="Wedding Teaser",
        client_id=client_uid,
        status=ProjectStatus.IN_REVIEW,
        total_cost=5000,
        members=[client_uid, editor_uid],
        current_revision_id=revision_id,
        assigned_editor_id=editor_uid,
    )
    db.collection("projects").document(project_id).set(project.to_document(exclude={"id"}))
    print(f"✅ Project created: {project.name} ({project_id})")

    # 3. One open comment on the timeline
    author = {"uid": client_uid, "name": client.display_name, "role": UserRole.CLIENT.value}
    asyncio.run(add_comment(project_id, revision_id, author, "Can we start on the ring shot?", 12.5))
    print("✅ Sample comment added")


if __name__ == "__main__":
    seed_platform()
