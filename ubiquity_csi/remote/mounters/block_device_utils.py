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

"""Helpers for SCSI/iSCSI multipath block devices."""

import os
import re

from oslo_log import log as logging

from ubiquity_csi import exception
from ubiquity_csi import utils

LOG = logging.getLogger(__name__)

MULTIPATH_DEVICE_DIR = '/dev/mapper'

# mpathg (36001738cfc9035eb0000000000cbb306) dm-8 IBM ,2810XIV
# 36001738cfc9035eb0000000000cbb306 dm-8 IBM ,2810XIV
MULTIPATH_HEADER_RE = re.compile(
    r'^(?P<name>\S+)\s+(?:\((?P<id>\w+)\)\s+)?dm-\d+')

# iscsiadm returns 21 when there are no sessions to rescan
ISCSI_NO_OBJS_FOUND = 21
# blkid returns 2 when the device carries no recognised filesystem
BLKID_NOTHING_FOUND = 2


class BlockDeviceUtils(object):

    def __init__(self, executor=None):
        self._execute = executor or utils.execute

    def rescan(self, iscsi=True):
        """Rescan the iSCSI sessions and SCSI bus, then reload multipath."""
        if iscsi:
            (out, err) = self._execute(
                'iscsiadm', '-m', 'session', '--rescan',
                run_as_root=True,
                check_exit_code=[0, ISCSI_NO_OBJS_FOUND])
            LOG.debug("StdOut from iscsiadm --rescan: %s", out)
        self._execute('rescan-scsi-bus', '-r', run_as_root=True)
        self._execute('multipath', '-r', run_as_root=True)

    def discover(self, wwn):
        """Return the multipath device path for the given WWN."""
        wanted = wwn.lower()
        (out, err) = self._execute('multipath', '-ll', run_as_root=True)
        for line in out.splitlines():
            match = MULTIPATH_HEADER_RE.match(line)
            if not match:
                continue
            mpath, scsi_id = match.group('name'), match.group('id')
            # NAA identifiers are reported with a leading '3'
            scsi_id = (scsi_id or mpath).lower()
            if wanted == scsi_id or '3' + wanted == scsi_id:
                device = os.path.join(MULTIPATH_DEVICE_DIR, mpath)
                LOG.debug("Discovered %(dev)s for WWN %(wwn)s",
                          {'dev': device, 'wwn': wwn})
                return device
        raise exception.DeviceNotFound(wwn=wwn)

    def cleanup(self, device):
        """Flush a multipath device whose LUN is gone."""
        mpath = os.path.basename(device)
        self._execute('dmsetup', 'message', mpath, '0', 'fail_if_no_path',
                      run_as_root=True)
        self._execute('multipath', '-f', mpath, run_as_root=True)

    def has_filesystem(self, device):
        (out, err) = self._execute('blkid', device, run_as_root=True,
                                   check_exit_code=[0, BLKID_NOTHING_FOUND])
        return bool(out.strip())

    def make_filesystem(self, device, fs_type):
        LOG.info('Creating %(fs)s filesystem on %(dev)s',
                 {'fs': fs_type, 'dev': device})
        self._execute('mkfs', '-t', fs_type, device, run_as_root=True)

    def mount_filesystem(self, device, mountpoint):
        self._execute('mount', device, mountpoint, run_as_root=True)

    def umount_filesystem(self, mountpoint):
        self._execute('umount', mountpoint, run_as_root=True)
