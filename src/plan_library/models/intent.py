from pydantic import Field

from plan_library.models.base import ModelBase


class Intent(ModelBase):
    """
    Classified user intent, produced by an external classifier.

    The plan library only relies on the category/subcategory key and the
    variables the classifier extracted from the message.
    """

    category: str = Field(..., description="Top-level category, e.g. 'code'.")
    subcategory: str = Field(
        default="", description="Subcategory, e.g. 'fix_tests'."
    )
    confidence: float = Field(
        default=1.0, ge=0.0, le=1.0, description="Classifier confidence."
    )
    tier: int = Field(
        default=0, ge=0, description="Classifier tier that produced the intent."
    )
    variables: dict[str, str] = Field(
        default_factory=dict,
        description="Variables extracted from the message.",
    )

    @property
    def key(self) -> str:
        """The ``category.subcategory`` key plans are stored under."""
        if self.subcategory:
            return f"{self.category}.{self.subcategory}"
        return self.category

    def __str__(self) -> str:
        return self.key
