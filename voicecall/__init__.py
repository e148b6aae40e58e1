"""Local voice call assistant: speech in, Ollama in the middle, speech out."""

__version__ = "0.3.0"
