"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from vetclinic.models.meeting_provision import MeetingProvision, ProvisionStatus

__all__ = ["MeetingProvision", "ProvisionStatus"]
