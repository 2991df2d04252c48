class DatasetError(Exception):
    pass


class RecordParseError(DatasetError):
    """Input is neither a JSON array nor newline-delimited JSON objects."""


class DatasetLoadError(DatasetError):
    """A named dataset could not be read or parsed."""


class TaxonomyError(DatasetError):
    pass
