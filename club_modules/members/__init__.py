"""Member directory: identity and contact fields reports join against."""

from club_modules.members.models import Member, MemberDraft
from club_modules.members.service import MemberService

__all__ = ["Member", "MemberDraft", "MemberService"]
