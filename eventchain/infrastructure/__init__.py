"""Infrastructure: orchestrator, worker pool, action executor, persistence, messaging."""
