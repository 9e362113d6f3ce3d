"""Qt integration for Agentic Sequencer."""
