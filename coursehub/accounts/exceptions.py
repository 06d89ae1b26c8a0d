"""
Account-level API errors. Rendered into the response envelope by
coursehub.exceptions.envelope_exception_handler.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class DeviceLimitError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Device limit reached. Remove a device to sign in here.'
    default_code = 'DEVICE_LIMIT_REACHED'

    def __init__(self, active_devices, max_devices):
        super().__init__()
        self.active_devices = active_devices
        self.max_devices = max_devices
        self.extra = {
            'activeDevices': active_devices,
            'maxDevices': max_devices,
        }


class DeviceSessionNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Device not found'
    default_code = 'DEVICE_NOT_FOUND'


class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid email or password'
    default_code = 'invalid_credentials'


class AccountDeactivated(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Account is deactivated'
    default_code = 'ACCOUNT_DEACTIVATED'


class InvalidRefreshToken(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid refresh token'
    default_code = 'invalid_refresh_token'


class InvalidOneTimeToken(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid or expired token'
    default_code = 'invalid_token'
