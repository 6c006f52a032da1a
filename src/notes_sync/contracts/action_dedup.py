from dataclasses import dataclass


@dataclass(frozen=True)
class ClaimResult:
    accepted: bool
    duplicate: bool
    holder: str | None
    reason: str


class ActiveActionLedger:
    """Tracks which logical UI actions currently own an unresolved handle."""

    def __init__(self) -> None:
        self._holder_by_action: dict[str, str] = {}

    def holder(self, action_key: str) -> str | None:
        return self._holder_by_action.get(action_key)

    def active_actions(self) -> list[str]:
        return list(self._holder_by_action)


def claim_action(ledger: ActiveActionLedger, action_key: str, handle_id: str) -> ClaimResult:
    current = ledger._holder_by_action.get(action_key)
    if current is not None:
        return ClaimResult(accepted=False, duplicate=True, holder=current, reason="action_in_flight")

    ledger._holder_by_action[action_key] = handle_id
    return ClaimResult(accepted=True, duplicate=False, holder=handle_id, reason="accepted")


def release_action(ledger: ActiveActionLedger, action_key: str, handle_id: str) -> bool:
    if ledger._holder_by_action.get(action_key) != handle_id:
        return False
    del ledger._holder_by_action[action_key]
    return True
