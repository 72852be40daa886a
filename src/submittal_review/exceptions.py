"""Custom exception hierarchy for the submittal review engine."""


class SubmittalReviewError(Exception):
    """Base exception for all submittal review errors."""


class ExtractionFailure(SubmittalReviewError):
    """The uploaded document could not be extracted. Fatal for a review."""


class AnalysisFailure(SubmittalReviewError):
    """Structured analysis of the document failed. The review continues without it."""


class GraphUnavailable(SubmittalReviewError):
    """The knowledge graph store could not be reached.

    Distinct from an empty result so callers can degrade to vector-only search.
    """


class RetrievalIndexError(SubmittalReviewError):
    """Error querying or fetching from the retrieval index."""


class RetrievalQueryFailure(SubmittalReviewError):
    """A single retrieval query failed. Isolated from sibling queries."""


class EmptyEvidence(SubmittalReviewError):
    """No validated evidence survived filtering and ranking."""


class EmbeddingError(SubmittalReviewError):
    """Error generating embeddings."""


class GenerationError(SubmittalReviewError):
    """Error returned by a text-generation provider."""


class GenerationFailure(GenerationError):
    """Report generation failed. The review falls back to a fixed template."""


class StructuredOutputParseFailure(GenerationError):
    """Both schema-constrained and free-text structured extraction failed."""


class ConfigurationError(SubmittalReviewError):
    """Error in system configuration."""
