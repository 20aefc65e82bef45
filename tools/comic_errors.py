"""
Comic Panels - Errors

Every failure of the panel builder is fatal. Each error carries where it
happened (panel label, storyboard line, file) so the build log points the
writer straight at the offending line.
"""


class StoryboardError(Exception):
    """Base class for all comic panel build failures."""

    kind = 'error'

    def __init__(self, message, panel=None, line=None, path=None):
        self.message = message
        self.panel = panel
        self.line = line
        self.path = path
        super().__init__(self.describe())

    def describe(self):
        """Render the error as a single human readable line."""
        location = []
        if self.panel:
            location.append(f"Panel {self.panel}")
        if self.line:
            location.append(f"line {self.line}")
        if location:
            return f"{' '.join(location)}: {self.message}"
        return self.message


class UsageError(StoryboardError):
    kind = 'usage'


class ConfigurationError(StoryboardError):
    kind = 'configuration'


class ParseError(StoryboardError):
    kind = 'parse'


class StructuralError(StoryboardError):
    kind = 'structure'


class AssetError(StoryboardError):
    """A sprite or font file could not be read."""

    kind = 'asset'
