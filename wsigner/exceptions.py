#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Exceptions
#
# - device-class errors are worth retrying (with fresh user interaction)
# - everything else will fail the same way next time
#

class SignerError(RuntimeError):
    retryable = False

    def __init__(self, msg, code=None):
        self.code = code
        super().__init__(msg)

class InvalidInput(SignerError, ValueError):
    pass

class DerivationError(InvalidInput):
    pass

class NotSupported(SignerError):
    pass

class DecryptionError(SignerError):
    pass

class Unavailable(SignerError):
    pass

class Conflict(SignerError):
    pass

class DeviceError(SignerError):
    retryable = True

    def __init__(self, msg, code=None, raw_msg=None):
        self.raw_msg = raw_msg or msg
        super().__init__(msg, code)

class DeviceUnavailable(DeviceError):
    pass

class SigningRejected(DeviceError):
    pass

class DeviceTimeout(DeviceError):
    pass

class VerificationError(DeviceError):
    # device signature does not match what it committed to
    retryable = False

# EOF
