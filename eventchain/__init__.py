"""Event-chain orchestration engine."""
