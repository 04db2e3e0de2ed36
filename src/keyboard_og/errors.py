"""Exception types raised while turning a form into an image."""


class OgImageError(Exception):
    """Base class for every failure of the OG image pipeline."""


class InputError(OgImageError):
    """The request body or one of its fields cannot be used."""


class FontResolutionError(OgImageError):
    """A font could not be located (missing file, no URL in stylesheet)."""


class UpstreamError(OgImageError):
    """The web-font service or the font file host could not be reached."""


class RenderError(OgImageError):
    """Layout or rasterization failed on otherwise valid input."""
