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

from ubiquity_csi.remote.mounters import mounter


class FakeMounter(mounter.Mounter):
    """Records calls instead of touching the node, for tests."""

    def __init__(self, *args, **kwargs):
        super(FakeMounter, self).__init__(*args, **kwargs)
        self.calls = []

    def mount(self, mountpoint, volume_config):
        self.calls.append(('mount', mountpoint, volume_config))
        return volume_config.get('local_mountpoint', mountpoint)

    def unmount(self, volume_config):
        self.calls.append(('unmount', volume_config))

    def action_after_detach(self, volume_config):
        self.calls.append(('action_after_detach', volume_config))
