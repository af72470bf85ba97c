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

import abc
import os

from oslo_config import cfg
from oslo_log import log as logging
from oslo_utils import fileutils

from ubiquity_csi import exception
from ubiquity_csi import utils

CONF = cfg.CONF
LOG = logging.getLogger(__name__)


class Mounter(object, metaclass=abc.ABCMeta):
    """Mounter object for one storage backend family.

    Base class for mounter objects, where a mounter performs
    the node local steps a backend needs once the storage
    server has attached (or before it detaches) a volume.
    This includes things like rescanning devices, creating
    filesystems, mounting and unmounting.

    Base class here does nothing more than set an executor and
    configuration as well as force implementation of required
    methods.

    """

    def __init__(self, *args, **kwargs):
        self.configuration = kwargs.get('configuration') or CONF
        self._execute = kwargs.get('executor') or utils.execute

    @abc.abstractmethod
    def mount(self, mountpoint, volume_config):
        """Make the volume usable on this node.

        :param mountpoint: the mountpoint token returned by the remote
                           attach call
        :param volume_config: backend specific volume attributes
        :returns: the local mountpoint path
        :raises: MountFailed
        """

    @abc.abstractmethod
    def unmount(self, volume_config):
        """Reverse the steps taken by mount.

        :raises: UnmountFailed
        """

    def action_after_detach(self, volume_config):
        """Backend specific cleanup, run once the server detached the volume.

        :raises: PostDetachFailed
        """
        pass

    def _is_mounted(self, local_mountpoint):
        return os.path.ismount(local_mountpoint)

    def _ensure_mountpoint(self, local_mountpoint):
        try:
            fileutils.ensure_tree(local_mountpoint)
        except OSError as e:
            raise exception.MountFailed(
                detail='unable to create %s: %s' % (local_mountpoint, e))

    def _remove_mountpoint(self, local_mountpoint, error_cls=None):
        """Remove the (empty) directory a volume was mounted on.

        A failure is raised as error_cls when given, otherwise it is only
        logged so it does not hide the error already being handled.
        """
        try:
            if os.path.isdir(local_mountpoint):
                os.rmdir(local_mountpoint)
        except OSError as e:
            if error_cls is None:
                LOG.warning('Unable to remove %(mp)s: %(e)s',
                            {'mp': local_mountpoint, 'e': e})
                return
            raise error_cls(
                detail='unable to remove %s: %s' % (local_mountpoint, e))
