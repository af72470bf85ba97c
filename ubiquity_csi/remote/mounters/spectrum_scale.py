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
from oslo_log import log as logging

from ubiquity_csi import exception
from ubiquity_csi.remote.mounters import mounter

LOG = logging.getLogger(__name__)


class SpectrumScaleMounter(mounter.Mounter):
    """Mounter for Spectrum Scale filesets.

    The filesystem is mounted on every node of the cluster, so the
    mountpoint returned by the server is already a local path.  All we
    do is check it is there and hand ownership to the requested
    uid/gid, if any.
    """

    def mount(self, mountpoint, volume_config):
        if not mountpoint or not os.path.isdir(mountpoint):
            raise exception.MountFailed(
                detail='fileset path %r is not available on this node'
                       % mountpoint)

        uid = volume_config.get('uid')
        gid = volume_config.get('gid')
        if uid is not None or gid is not None:
            owner = '%s:%s' % ('' if uid is None else uid,
                               '' if gid is None else gid)
            try:
                self._execute('chown', owner, mountpoint, run_as_root=True)
            except putils.ProcessExecutionError as e:
                raise exception.MountFailed(detail=e)
            LOG.debug('Changed owner of %(mp)s to %(owner)s',
                      {'mp': mountpoint, 'owner': owner})
        return mountpoint

    def unmount(self, volume_config):
        # nothing to undo, the fileset stays linked on the cluster
        pass
