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

import threading

from oslo_config import cfg
from oslo_log import log as logging
from oslo_utils import importutils

from ubiquity_csi import exception
from ubiquity_csi import resources

LOG = logging.getLogger(__name__)

registry_opts = [
    cfg.DictOpt('backend_mounters',
                default={},
                help='Additional backend:mounter class mappings, e.g. '
                     '"my-backend:mypackage.mounters.MyMounter". Entries '
                     'override the built in mapping for the same backend'),
]

CONF = cfg.CONF
CONF.register_opts(registry_opts)

MOUNTER_MAPPING = {
    resources.SPECTRUM_SCALE:
        'ubiquity_csi.remote.mounters.spectrum_scale.SpectrumScaleMounter',
    resources.SPECTRUM_SCALE_NFS:
        'ubiquity_csi.remote.mounters.nfs.NfsMounter',
    resources.SOFTLAYER_NFS:
        'ubiquity_csi.remote.mounters.nfs.NfsMounter',
    resources.SCBE:
        'ubiquity_csi.remote.mounters.scbe.ScbeMounter',
}


class MounterRegistry(object):
    """Hands out one Mounter instance per backend.

    Mounters are created on first use and reused for the lifetime of
    the registry, they may hold device state between calls.
    """

    def __init__(self, configuration=None, executor=None):
        self.configuration = configuration or CONF
        self._execute = executor
        self._mounters = {}
        self._lock = threading.Lock()

    def _mounter_class_path(self, backend):
        mapping = dict(MOUNTER_MAPPING)
        mapping.update(self.configuration.backend_mounters or {})
        return mapping.get(backend)

    def resolve(self, backend):
        mounter = self._mounters.get(backend)
        if mounter is not None:
            LOG.debug('Reusing existing mounter for backend %s', backend)
            return mounter

        with self._lock:
            mounter = self._mounters.get(backend)
            if mounter is not None:
                return mounter

            class_path = self._mounter_class_path(backend)
            if not class_path:
                LOG.error('Mounter not found for backend: %s', backend)
                raise exception.MounterNotFound(backend=backend)

            LOG.debug('Creating mounter %(cls)s for backend %(backend)s',
                      {'cls': class_path, 'backend': backend})
            mounter = importutils.import_object(
                class_path,
                configuration=self.configuration,
                executor=self._execute)
            self._mounters[backend] = mounter
            return mounter
