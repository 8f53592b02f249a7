import hashlib


def resource_digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()
