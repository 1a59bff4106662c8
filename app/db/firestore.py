import os
import logging
import threading
import firebase_admin
from firebase_admin import auth as firebase_auth, credentials, firestore
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("editohub.db")

PROJECT_ID = os.getenv("GCP_PROJECT_ID")
SA_KEY_PATH = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
STORAGE_BUCKET = os.getenv("GCP_STORAGE_BUCKET")

_client = None
_auth = None
_init_lock = threading.Lock()


def initialize_app():
    """Initializes the default Firebase app once per process."""
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {"projectId": PROJECT_ID}
    if STORAGE_BUCKET:
        options["storageBucket"] = STORAGE_BUCKET

    # 1. Local Dev: Use Key File if it exists
    if SA_KEY_PATH and os.path.exists(SA_KEY_PATH):
        cred = credentials.Certificate(SA_KEY_PATH)
        app = firebase_admin.initialize_app(cred, options)
        logger.info(f"Connected to Firestore (Key): {PROJECT_ID}")

    # 2. Production (Cloud Run / Functions): Use Default Identity
    else:
        app = firebase_admin.initialize_app(options=options)
        logger.info(f"Connected to Firestore (ADC): {PROJECT_ID}")

    return app


def get_db():
    """
    Returns the process-wide Firestore client.
    Concurrent cold starts race on the first call, so init runs under a lock.
    """
    global _client
    if _client is None:
        with _init_lock:
            if _client is None:
                initialize_app()
                _client = firestore.client()
    return _client


def get_auth():
    """Returns the identity-provider client (firebase_admin.auth bound to the default app)."""
    global _auth
    if _auth is None:
        with _init_lock:
            if _auth is None:
                initialize_app()
                _auth = firebase_auth
    return _auth
