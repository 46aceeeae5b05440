import os
import sys
import tempfile

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# moving.app builds a module-level app at import; keep its uploads out of the tree
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="moving-uploads-"))
os.environ.setdefault("ADMIN_API_KEY", "")
os.environ.setdefault("ORS_API_KEY", "")
