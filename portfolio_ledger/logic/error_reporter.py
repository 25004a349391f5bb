# portfolio_ledger/logic/error_reporter.py


class ErrorReporter:
    """
    Manages the collection of lot violations found while parsing and validating a batch.
    Every violation is kept so the caller can reject the batch with the full list.
    """
    def __init__(self):
        # { lot_id: [formatted violation, ...] } in insertion order
        self._violations: dict[str, list[str]] = {}

    def add_error(self, asset: str, lot_id: str, error_reason: str):
        """
        Adds a violation for a specific lot. The same reason reported twice
        for the same lot is only kept once.
        """
        message = f"asset={asset} id={lot_id}: {error_reason}"
        reasons = self._violations.setdefault(lot_id, [])
        if message not in reasons: # Avoid duplicate messages
            reasons.append(message)

    def get_errors(self) -> list[str]:
        """
        Returns every collected violation as a flat list.
        """
        return [message for reasons in self._violations.values() for message in reasons]

    def has_errors(self) -> bool:
        """
        Checks if any violations have been reported.
        """
        return bool(self._violations)

    def has_errors_for(self, lot_id: str) -> bool:
        return lot_id in self._violations

    def clear(self):
        """
        Clears all collected violations.
        """
        self._violations = {}
