"""Release pipeline: registry, creator, handoff, build tasks, orchestration."""
