from .remote import RemoteError, RemoteRegistry, RemoteSkill

__all__ = [
    "RemoteError",
    "RemoteRegistry",
    "RemoteSkill",
]
