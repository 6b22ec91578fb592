"""
Exceptions for CareVault
Everything derives from CareVaultError so callers have one general error catcher
"""


class CareVaultError(Exception):
    # general container for errors
    pass


class ConfigurationError(CareVaultError):
    # raised at startup when the encryption key is missing or malformed (fatal)
    pass


class CryptoError(CareVaultError):
    # raised by the cipher layer, never caught inside it
    pass


class InvalidKeyLengthError(CryptoError):
    # raised when the key is not exactly 32 bytes
    pass


class InvalidNonceLengthError(CryptoError):
    # raised when the nonce is not exactly 16 bytes
    pass


class AuthenticationFailedError(CryptoError):
    # raised on tag mismatch: tampering or wrong key
    pass


class CorruptCiphertextError(CryptoError):
    # raised when ciphertext, tag or encoded payload has the wrong shape
    pass


class EntropyUnavailableError(CryptoError):
    # raised when the OS random source cannot produce a nonce
    pass


class ValidationError(CareVaultError):
    # raised when an upload is rejected before any cryptographic work
    pass


class EmptyDocumentError(ValidationError):
    # raised when the uploaded document has zero bytes
    pass


class InvalidDocumentError(ValidationError):
    # raised when a required upload field is missing or malformed
    pass


class StorageError(CareVaultError):
    # raised if the persistence layer fails in some way
    pass


class StorageUnavailableError(StorageError):
    # transient, caller may retry with backoff
    pass


class DocumentNotFoundError(StorageError):
    # raised when no record exists for an id (terminal for that id)

    def __init__(self, document_id):
        super().__init__(f"Document with ID '{document_id}' not found.")
        self.document_id = document_id


class DocumentCorruptedError(CareVaultError):
    # raised when a stored record fails authentication on retrieval

    def __init__(self, document_id):
        super().__init__(
            f"Document with ID '{document_id}' failed integrity verification."
        )
        self.document_id = document_id
