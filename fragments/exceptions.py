"""Custom exception classes for the fragments service."""


class FragmentError(Exception):
    """
    Base exception class for all fragment-related errors.
    """
    pass


class ValidationError(FragmentError):
    """
    Raised when fragment input is malformed or a required field is missing.
    """
    pass


class TypeMismatchError(ValidationError):
    """
    Raised when replacement data is sent with a type other than the stored type.
    """
    pass


class NotFoundError(FragmentError):
    """
    Raised when no fragment exists for the given owner and id.
    """
    pass


class UnsupportedMediaTypeError(FragmentError):
    """
    Raised when a request declares a Content-Type the service cannot store.
    """
    pass


class PayloadTooLargeError(FragmentError):
    """
    Raised when a request body exceeds the configured size limit.
    """
    pass


class UnsupportedConversionError(FragmentError):
    """
    Raised when the requested format cannot be produced from the stored type.
    """
    pass


class ConversionFailedError(UnsupportedConversionError):
    """
    Raised when a payload cannot be parsed for the requested conversion.
    """
    pass


class StorageError(FragmentError):
    """
    Raised when the storage backend fails; the message names the table and key.
    """
    pass


class InvalidCredentialsError(FragmentError):
    """
    Raised when HTTP Basic credentials are missing or invalid.
    """
    pass
