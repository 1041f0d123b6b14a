"""Agent sessions, conversation history and the generation collaborator."""
