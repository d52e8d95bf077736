"""Global pytest configuration."""

import os

# Keep tests off real model APIs; fixtures pass explicit keys where needed
os.environ.setdefault("ENVIRONMENT", "test")
for _key in ("GEMINI_API_KEY", "OPENAI_API_KEY"):
    os.environ.pop(_key, None)
