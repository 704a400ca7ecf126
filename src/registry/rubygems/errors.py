"""Error taxonomy for the RubyGems resolver.

Library code raises these instead of exiting; only the CLI maps them to
exit codes.
"""


class GemResolutionError(Exception):
    """Base class for every resolver error."""


class ManifestNotFound(GemResolutionError):
    """No ``.gemspec`` (or lock file) in the expected location."""


class DescendantUnresolved(GemResolutionError):
    """A requirement string has no matching installed gem."""

    def __init__(self, requirement: str, name: str = ""):
        super().__init__(f"no installed gem satisfies {requirement!r}")
        self.requirement = requirement
        self.name = name


class ChecksumUnavailable(GemResolutionError):
    """No checksum could be computed for a packaged gem."""


class LicenseNotFound(GemResolutionError):
    """No license file could be located."""


class FilesystemError(GemResolutionError):
    """An expected directory could not be read."""

    def __init__(self, path: str, reason: object):
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class DependenciesNotInstalled(GemResolutionError):
    """Bundler has not installed the project's gems into ``vendor/bundle``."""

    def __init__(self):
        super().__init__(
            "* Please install dependencies by running the following command :\n"
            "    1) bundle config set --local path 'vendor/bundle' && bundle install "
            "&& bundle exec rake install\n"
            "    2) run the gemgraph command again"
        )


class InvalidProjectType(GemResolutionError):
    """The project root holds no ``.gemspec`` manifest."""

    def __init__(self):
        super().__init__(
            "* Tool only supports ruby gems projects with valid .gemspec manifest "
            "in project root directory"
        )


class NoDependenciesFound(GemResolutionError):
    """A lock file was read but listed no packages."""
