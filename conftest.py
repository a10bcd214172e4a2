"""Global pytest configuration."""

import os
import tempfile

# Settings are read at import time, so seed them before any kanso import
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-supabase-key")
os.environ.setdefault("RATE_LIMIT_STORE_DIR", tempfile.mkdtemp(prefix="kanso_rl_test_"))
