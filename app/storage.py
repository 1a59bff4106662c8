import os
from datetime import timedelta
from google.cloud import storage
from dotenv import load_dotenv

load_dotenv()

# Ensure this is set in your .env and Cloud Run variables
BUCKET_NAME = os.getenv("GCP_STORAGE_BUCKET")


def _bucket():
    if not BUCKET_NAME:
        raise ValueError("GCP_STORAGE_BUCKET environment variable not set")

    # In Cloud Run, this uses the default service account automatically.
    # Locally, it looks for GOOGLE_APPLICATION_CREDENTIALS.
    storage_client = storage.Client()
    return storage_client.bucket(BUCKET_NAME)


def revision_blob_name(project_id: str, version: int, filename: str) -> str:
    return f"projects/{project_id}/v{version}_{filename}"


def upload_revision_file(file_obj, blob_name: str, content_type: str) -> str:
    """
    Uploads a revision video to Google Cloud Storage and returns its public URL.
    """
    blob = _bucket().blob(blob_name)
    blob.upload_from_file(file_obj, content_type=content_type)
    return blob.public_url


def generate_signed_url(blob_name: str, minutes: int = 60) -> str:
    """
    Temporary GET URL for a private revision file.
    """
    blob = _bucket().blob(blob_name)
    return blob.generate_signed_url(
        version="v4",
        expiration=timedelta(minutes=minutes),
        method="GET"
    )
