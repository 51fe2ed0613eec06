"""Send-permission decisions."""

from chatwarden.moderation.gate import DenyReason, ModerationGate, Verdict, VerdictKind

__all__ = ["DenyReason", "ModerationGate", "Verdict", "VerdictKind"]
