from collab_presence.models.presence import PresenceCreate, PresenceUpdate, RosterResponse

__all__ = ["PresenceCreate", "PresenceUpdate", "RosterResponse"]
