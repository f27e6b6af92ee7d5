"""Runtime configuration.

One frozen value built at startup and handed to ``Runtime``. Validation
happens in ``__post_init__`` so a bad value fails before anything runs.
"""

from dataclasses import dataclass

from perch.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Runtime configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RuntimeConfig(base_url="https://example.com/", max_views=20)
    """

    # Location
    base_url: str = "http://localhost/"  # Relative resource paths resolve against this
    root: str = "/"  # Initial URL resolved by run()

    # View cache
    max_views: int = 10
    container_tag: str = "main"  # Auto-created under <body> when absent

    # Link registry
    link_attribute: str = "data-link"

    # Marker class added to <body> once run() has resolved the first URL
    ready_class: str = "perch-ready"

    # False lets a second navigation interleave with the first
    serialize_navigations: bool = True

    # Network
    fetch_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.max_views < 1:
            msg = f"max_views must be at least 1, got {self.max_views}"
            raise ConfigurationError(msg)
        if self.fetch_timeout <= 0:
            msg = f"fetch_timeout must be positive, got {self.fetch_timeout}"
            raise ConfigurationError(msg)
        if not self.root.startswith("/"):
            msg = f"root must be an absolute path, got {self.root!r}"
            raise ConfigurationError(msg)
