"""Generation agents: providers, invoker, response interpreter and orchestrator."""
