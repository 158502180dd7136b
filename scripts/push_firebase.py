# Copy the locally stored state into Firestore (one document per record).
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from database.models import init_db
from database.storage import LocalStorage, load_data, load_firebase_config
from core.firebase import FirestoreSync

if __name__ == "__main__":
    init_db()
    storage = LocalStorage()
    data = load_data(storage)
    if data is None:
        sys.exit("No local data to push.")
    config = load_firebase_config(storage).model_copy(update={"enabled": True})
    sync = FirestoreSync()
    if not sync.init(config):
        sys.exit("Firebase is not configured (set FIREBASE_CREDENTIALS or save a config first).")
    print("Pushing local data to Firestore…")
    print(f"Done ✓  {sync.push_all(data)} documents written")
