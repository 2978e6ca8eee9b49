"""Analysis service — the per-file LLM review collaborator."""
