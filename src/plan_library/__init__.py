"""Plan library and execution engine.

Reusable step plans keyed by intent, template instantiation and validation,
dependency-ordered execution and success-pattern learning.
"""

__version__ = "0.1.0"
