"""ID generation utilities."""

import secrets

from nanoid import generate

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
ID_LENGTH = 12


def gen_id(prefix: str) -> str:
    return f"{prefix}{generate(ALPHABET, ID_LENGTH)}"


def user_id() -> str:
    return gen_id("us_")


def task_id() -> str:
    return gen_id("tk_")


def message_id() -> str:
    return gen_id("ms_")


def blob_id() -> str:
    return gen_id("bl_")


def engagement_id(tid: str, worker_id: str) -> str:
    return f"wr_{tid}_{worker_id}"


def api_key() -> str:
    return f"ck_{secrets.token_urlsafe(24)}"
