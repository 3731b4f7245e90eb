"""
Supabase clients.

- get_supabase_client: anon key, used only to check user tokens
- get_admin_client: service role key, used by the record stores and
  admin scripts (bypasses RLS, which is enabled on every record table)
"""

import os
from functools import lru_cache
from supabase import create_client, Client


def _connect(key_var: str) -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get(key_var)

    if not url or not key:
        raise ValueError(f"SUPABASE_URL and {key_var} must be set")

    return create_client(url, key)


@lru_cache()
def get_supabase_client() -> Client:
    return _connect("SUPABASE_KEY")


@lru_cache()
def get_admin_client() -> Client:
    return _connect("SUPABASE_SERVICE_KEY")
