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
from ubiquity_csi.remote.mounters import mounter

LOG = logging.getLogger(__name__)

nfs_opts = [
    cfg.StrOpt('nfs_mount_root',
               default='/mnt/ubiquity',
               help='Directory under which NFS shares are mounted'),
    cfg.StrOpt('nfs_mount_options',
               help='Mount options passed to mount -o for NFS shares, '
                    'e.g. "vers=3,nolock"'),
]

CONF = cfg.CONF
CONF.register_opts(nfs_opts)


class NfsMounter(mounter.Mounter):
    """Mounts NFS exported volumes (Spectrum Scale NFS, SoftLayer NFS).

    The share comes from the ``nfs_share`` entry of the volume config,
    of the ``server:/export/path`` form, on both mount and unmount.  It
    is mounted on ``<nfs_mount_root>/<export path>``.
    """

    def _get_share(self, volume_config, error_cls):
        nfs_share = volume_config.get('nfs_share')
        if not nfs_share or ':' not in nfs_share:
            raise error_cls(
                detail='invalid NFS share %r in volume config' % nfs_share)
        return nfs_share

    def _local_mountpoint(self, nfs_share):
        export = nfs_share.split(':', 1)[-1].strip('/')
        return os.path.join(self.configuration.nfs_mount_root, export)

    def mount(self, mountpoint, volume_config):
        nfs_share = self._get_share(volume_config, exception.MountFailed)
        local_mountpoint = self._local_mountpoint(nfs_share)
        LOG.debug('Mounting NFS share %(share)s (server mountpoint %(mp)s)',
                  {'share': nfs_share, 'mp': mountpoint})
        if self._is_mounted(local_mountpoint):
            LOG.info('NFS share %(share)s already mounted on %(mp)s',
                     {'share': nfs_share, 'mp': local_mountpoint})
            return local_mountpoint

        self._ensure_mountpoint(local_mountpoint)
        cmd = ['mount', '-t', 'nfs']
        if self.configuration.nfs_mount_options:
            cmd += ['-o', self.configuration.nfs_mount_options]
        cmd += [nfs_share, local_mountpoint]
        try:
            self._execute(*cmd, run_as_root=True)
        except putils.ProcessExecutionError as e:
            LOG.warning("Failed to mount NFS share %(share)s: %(e)s",
                        {'share': nfs_share, 'e': e})
            self._remove_mountpoint(local_mountpoint)
            raise exception.MountFailed(detail=e)

        LOG.info('Mounted NFS share %(share)s on %(mp)s',
                 {'share': nfs_share, 'mp': local_mountpoint})
        return local_mountpoint

    def unmount(self, volume_config):
        nfs_share = self._get_share(volume_config, exception.UnmountFailed)
        local_mountpoint = self._local_mountpoint(nfs_share)
        if self._is_mounted(local_mountpoint):
            try:
                self._execute('umount', local_mountpoint, run_as_root=True)
            except putils.ProcessExecutionError as e:
                raise exception.UnmountFailed(detail=e)
        else:
            LOG.info('%s is not mounted', local_mountpoint)

        self._remove_mountpoint(local_mountpoint, exception.UnmountFailed)
