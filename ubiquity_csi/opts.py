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

import itertools

from ubiquity_csi.csi import csi_service
from ubiquity_csi.remote import client
from ubiquity_csi.remote.mounters import nfs
from ubiquity_csi.remote.mounters import registry
from ubiquity_csi.remote.mounters import scbe
from ubiquity_csi import utils


def list_opts():
    return [
        ('DEFAULT',
            itertools.chain(
                client.client_opts,
                nfs.nfs_opts,
                registry.registry_opts,
                utils.utils_opts,
            )),
        ('csi', csi_service.csi_opts),
        ('scbe', scbe.scbe_opts),
        ('ubiquity_server', client.server_opts),
    ]
