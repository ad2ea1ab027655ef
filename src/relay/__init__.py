"""Per-call relay between ConversationRelay transcripts and a streaming LLM."""
