#    Licensed under the Apache License, Version 2.0 (the "License"); you may
#    not use this file except in compliance with the License. You may obtain
#    a copy of the License at
#
#         http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
#    WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
#    License for the specific language governing permissions and limitations
#    under the License.

"""Ubiquity CSI base exception handling."""

from oslo_log import log as logging

from ubiquity_csi.i18n import _


LOG = logging.getLogger(__name__)


class UbiquityCSIException(Exception):
    """Base Ubiquity CSI Exception

    To correctly use this class, inherit from it and define
    a 'message' property. That message will get printf'd
    with the keyword arguments provided to the constructor.

    """
    message = _("An unknown exception occurred.")
    code = 500

    def __init__(self, message=None, **kwargs):
        self.kwargs = kwargs
        self.kwargs['message'] = message

        if 'code' not in self.kwargs:
            try:
                self.kwargs['code'] = self.code
            except AttributeError:
                pass

        for k, v in self.kwargs.items():
            if isinstance(v, Exception):
                self.kwargs[k] = str(v)

        if self._should_format():
            try:
                message = self.message % kwargs
            except Exception:
                # kwargs doesn't match a variable in the message
                # log the issue and the kwargs
                LOG.exception('Exception in string format operation:')
                for name, value in kwargs.items():
                    LOG.error("%(name)s: %(value)s",
                              {'name': name, 'value': value})
                message = self.message
        elif isinstance(message, Exception):
            message = str(message)

        self.msg = message
        super(UbiquityCSIException, self).__init__(message)

    def _should_format(self):
        return self.kwargs['message'] is None or '%(message)' in self.message


class ValidationError(UbiquityCSIException):
    message = _("Invalid request: %(reason)s")
    code = 400


class RemoteUnavailable(UbiquityCSIException):
    message = _("Unable to reach the storage API at %(url)s: %(reason)s")
    code = 503


class RemoteRejected(UbiquityCSIException):
    message = _("Storage API rejected the request (%(code)s): "
                "%(description)s")

    def __init__(self, message=None, **kwargs):
        super(RemoteRejected, self).__init__(message, **kwargs)
        self.code = self.kwargs['code']
        self.description = self.kwargs.get('description')


class DecodeFailure(UbiquityCSIException):
    message = _("Unable to decode storage API response from %(url)s: "
                "%(reason)s")


class MounterNotFound(UbiquityCSIException):
    message = _("Mounter not found for backend: %(backend)s")
    code = 404

    def __init__(self, message=None, **kwargs):
        super(MounterNotFound, self).__init__(message, **kwargs)
        self.backend = self.kwargs.get('backend')


class MountFailed(UbiquityCSIException):
    message = _("Failed to mount volume: %(detail)s")


class UnmountFailed(UbiquityCSIException):
    message = _("Failed to unmount volume: %(detail)s")


class PostDetachFailed(UbiquityCSIException):
    message = _("Volume was detached on the storage server but local "
                "cleanup failed: %(detail)s")


class DeviceNotFound(UbiquityCSIException):
    message = _("No multipath device found for WWN %(wwn)s")
    code = 404
