"""stack-sweep - ordered teardown of AWS resources belonging to one deployment."""

__version__ = "0.3.0"
