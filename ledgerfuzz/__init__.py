"""ledgerfuzz: storage invariant checker and randomized contract fuzzer for a
proof-of-stake ledger with subnets, staking shares and concentrated liquidity."""

__version__ = "0.1.0"
