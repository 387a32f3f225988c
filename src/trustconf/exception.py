class TrustConfError(Exception):
    pass


class ConfigurationError(TrustConfError):
    pass


class PersistenceError(TrustConfError):
    pass


class MetadataParseError(TrustConfError):
    pass


class SchemaLookupError(TrustConfError):
    pass


class AttributeResolutionError(TrustConfError):
    pass


class FilterParseError(TrustConfError):
    pass


class ProfileParseError(TrustConfError):
    pass


class RenderError(TrustConfError):
    pass


class WriteError(TrustConfError):
    pass


class DownloadError(TrustConfError):
    pass


class SynthesisInProgress(TrustConfError):
    pass
