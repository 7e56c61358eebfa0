class WcmError(Exception):
    """Base class for errors raised by wcm."""


class MetadataDirectoryError(WcmError):
    """None of the schema directories could be opened."""

    def __init__(self, directories):
        self.directories = list(directories)
        super().__init__(
            "Could not open any metadata directory: " + ", ".join(self.directories)
        )


class StoreLoadError(WcmError):
    """A configuration file exists but could not be parsed."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to load {self.path}: {reason}")
