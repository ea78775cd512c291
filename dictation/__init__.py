"""Sliced dictation: slice transcription, ordered merge, dictionary substitution, LLM formatting."""
