"""meetscribe - continuous meeting transcription to a Markdown transcript."""

__version__ = "0.1.0"
