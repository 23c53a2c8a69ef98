class InvalidConfiguration(ValueError):
    """Invalid dimensions or settings. Raised at construction or encoding time; never retried."""


class FeatureCountMismatch(InvalidConfiguration):
    """The encoder filled a different number of features than it declares."""
