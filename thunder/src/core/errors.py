"""
Thunder - Error Taxonomy
=========================
Failures raised by the retrieval core.  None of them are retried
internally; callers decide whether to degrade to ungrounded answering.

An empty retrieval (nothing found, or the relevance gate said no) is
**not** an error — it is the normal empty ``ContextResult``.
"""


class ThunderError(Exception):
    """Base class for every error raised by the retrieval core."""


class EmbeddingFailure(ThunderError):
    """The embedding model could not be loaded, or inference failed."""


class IndexUnavailable(ThunderError):
    """The vector index could not be opened or queried."""
