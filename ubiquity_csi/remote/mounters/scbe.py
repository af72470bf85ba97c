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

import os

from oslo_concurrency import processutils as putils
from oslo_config import cfg
from oslo_log import log as logging

from ubiquity_csi import exception
from ubiquity_csi.remote.mounters import block_device_utils
from ubiquity_csi.remote.mounters import mounter
from ubiquity_csi import resources

LOG = logging.getLogger(__name__)

scbe_opts = [
    cfg.BoolOpt('skip_rescan_iscsi',
                default=False,
                help='Skip the iSCSI session rescan when attaching and '
                     'detaching volumes (FC only environments)'),
    cfg.StrOpt('mount_root',
               default='/ubiquity',
               help='Directory under which SCBE volumes are mounted, one '
                    'sub directory per volume WWN'),
    cfg.StrOpt('default_filesystem',
               default='ext4',
               help='Filesystem created on a new volume when its config '
                    'does not name one'),
]

CONF = cfg.CONF
CONF.register_opts(scbe_opts, group='scbe')


class ScbeMounter(mounter.Mounter):
    """Mounter for volumes provisioned through IBM Spectrum Control Base.

    The storage server maps the LUN to the host; locally we have to
    rescan, find the multipath device of the LUN WWN, put a filesystem
    on it the first time and mount it under the mount root.

    The volume config is expected to carry:

    :Wwn:       the WWN of the LUN backing the volume

    :fstype:    optional filesystem type, defaults to
                [scbe]/default_filesystem
    """

    def __init__(self, *args, **kwargs):
        super(ScbeMounter, self).__init__(*args, **kwargs)
        self.block_device_utils = block_device_utils.BlockDeviceUtils(
            executor=self._execute)

    @property
    def _rescan_iscsi(self):
        return not self.configuration.scbe.skip_rescan_iscsi

    def _get_wwn(self, volume_config, error_cls):
        wwn = volume_config.get('Wwn')
        if not wwn:
            raise error_cls(detail='volume config has no Wwn')
        return wwn

    def _mountpoint_for(self, wwn):
        return os.path.join(self.configuration.scbe.mount_root, wwn)

    def mount(self, mountpoint, volume_config):
        wwn = self._get_wwn(volume_config, exception.MountFailed)
        fs_type = (volume_config.get(resources.OPTION_NAME_FOR_VOLUME_FS_TYPE)
                   or self.configuration.scbe.default_filesystem)
        local_mountpoint = self._mountpoint_for(wwn)
        LOG.debug('Mounting WWN %(wwn)s (server mountpoint %(mp)s) on '
                  '%(local)s', {'wwn': wwn, 'mp': mountpoint,
                                'local': local_mountpoint})

        try:
            self.block_device_utils.rescan(iscsi=self._rescan_iscsi)
            device = self.block_device_utils.discover(wwn)
            if not self.block_device_utils.has_filesystem(device):
                self.block_device_utils.make_filesystem(device, fs_type)
        except (putils.ProcessExecutionError,
                exception.DeviceNotFound) as e:
            LOG.warning("Failed to prepare device for WWN %(wwn)s: %(e)s",
                        {'wwn': wwn, 'e': e})
            raise exception.MountFailed(detail=e)

        if self._is_mounted(local_mountpoint):
            LOG.info('%s is already mounted', local_mountpoint)
            return local_mountpoint

        self._ensure_mountpoint(local_mountpoint)
        try:
            self.block_device_utils.mount_filesystem(device, local_mountpoint)
        except putils.ProcessExecutionError as e:
            LOG.warning("Failed to mount %(dev)s on %(mp)s: %(e)s",
                        {'dev': device, 'mp': local_mountpoint, 'e': e})
            self._remove_mountpoint(local_mountpoint)
            raise exception.MountFailed(detail=e)
        return local_mountpoint

    def unmount(self, volume_config):
        wwn = self._get_wwn(volume_config, exception.UnmountFailed)
        local_mountpoint = self._mountpoint_for(wwn)
        if self._is_mounted(local_mountpoint):
            try:
                self.block_device_utils.umount_filesystem(local_mountpoint)
            except putils.ProcessExecutionError as e:
                raise exception.UnmountFailed(detail=e)
        else:
            LOG.info('%s is not mounted', local_mountpoint)
        self._remove_mountpoint(local_mountpoint, exception.UnmountFailed)

    def action_after_detach(self, volume_config):
        wwn = self._get_wwn(volume_config, exception.PostDetachFailed)
        try:
            try:
                device = self.block_device_utils.discover(wwn)
            except exception.DeviceNotFound:
                LOG.info('No multipath device left for WWN %s', wwn)
            else:
                self.block_device_utils.cleanup(device)
            self.block_device_utils.rescan(iscsi=self._rescan_iscsi)
        except putils.ProcessExecutionError as e:
            raise exception.PostDetachFailed(detail=e)
