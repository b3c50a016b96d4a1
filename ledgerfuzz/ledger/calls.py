"""Identifiers of the ledger mutations the contract library submits.

Ids are ``<module>.<call>``; arguments are passed by the call's own
parameter names.
"""

TRANSFER_KEEP_ALIVE = "Balances.transfer_keep_alive"  # dest, value
ADD_STAKE = "SubtensorModule.add_stake"  # hotkey, netuid, amount_staked
REMOVE_STAKE = "SubtensorModule.remove_stake"  # hotkey, netuid, amount_unstaked
