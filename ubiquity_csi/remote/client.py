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

"""Client for the Ubiquity storage API.

Besides plain volume CRUD, the client drives the attach and detach
workflows: the server side attach/detach call and the node local
mount/unmount of the backend owning the volume.
"""

from oslo_config import cfg
from oslo_log import log as logging
from oslo_utils import excutils
import requests

from ubiquity_csi import exception
from ubiquity_csi.remote.mounters import registry
from ubiquity_csi import resources
from ubiquity_csi import utils

LOG = logging.getLogger(__name__)

server_opts = [
    cfg.HostAddressOpt('address',
                       default='127.0.0.1',
                       help='Address of the Ubiquity storage server'),
    cfg.PortOpt('port',
                default=9999,
                help='Port of the Ubiquity storage server'),
    cfg.FloatOpt('timeout',
                 help='Seconds to wait for the storage server before '
                      'giving up on a request. Waits forever when unset'),
]

client_opts = [
    cfg.ListOpt('backends',
                default=[resources.SPECTRUM_SCALE, resources.SCBE],
                help='Backends to activate on the storage server'),
    cfg.StrOpt('nfs_client_config',
               help='NFS client configuration passed to the storage server '
                    'as the nfsClientConfig option of new volumes, e.g. '
                    '"192.168.1.0/24(Access_Type=RW,Protocols=3:4)"'),
]

CONF = cfg.CONF
CONF.register_opts(server_opts, group='ubiquity_server')
CONF.register_opts(client_opts)


def storage_api_url(conf=None):
    conf = conf or CONF
    return 'http://%s:%d/ubiquity_storage' % (conf.ubiquity_server.address,
                                              conf.ubiquity_server.port)


class RemoteClient(object):
    """Talks to the storage server and owns the per backend mounters."""

    def __init__(self, storage_api_url, configuration=None, logger=None,
                 session=None, mounter_registry=None):
        self.storage_api_url = storage_api_url
        self.configuration = configuration or CONF
        self.log = logger or LOG
        self.session = session or requests.Session()
        self.mounter_registry = (mounter_registry or
                                 registry.MounterRegistry(self.configuration))
        self._activated = False

    def _request(self, method, url, payload):
        self.log.debug('%(method)s %(url)s', {'method': method, 'url': url})
        try:
            response = self.session.request(
                method, url, json=payload,
                timeout=self.configuration.ubiquity_server.timeout)
        except requests.exceptions.RequestException as e:
            self.log.error('Error in %(method)s %(url)s remote call: %(e)s',
                           {'method': method, 'url': url, 'e': e})
            raise exception.RemoteUnavailable(url=url, reason=e)

        if not 200 <= response.status_code < 300:
            self.log.error('Error in %(method)s %(url)s remote call: '
                           '%(status)s %(body)s',
                           {'method': method, 'url': url,
                            'status': response.status_code,
                            'body': response.text})
            raise exception.RemoteRejected(
                code=response.status_code,
                description=self._extract_error(response))
        return response

    @staticmethod
    def _extract_error(response):
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason
        if isinstance(body, dict):
            for key in ('Err', 'description', 'error'):
                if body.get(key):
                    return body[key]
        return response.text

    def _decode(self, response, key):
        try:
            return response.json()[key]
        except (ValueError, KeyError, TypeError) as e:
            self.log.error('Error in unmarshalling response from %(url)s: '
                           '%(e)r', {'url': response.url, 'e': e})
            raise exception.DecodeFailure(url=response.url, reason=repr(e))

    def _url(self, *parts):
        return utils.format_url(self.storage_api_url, *parts)

    def activate(self, backends=None):
        if self._activated:
            return
        self.log.debug('remoteClient: activate start')
        backends = (list(backends) if backends is not None
                    else self.configuration.backends)
        self._request('POST', self._url('activate'),
                      {'Backends': backends, 'Opts': {}})
        self._activated = True
        self.log.info('Activated backends %s on the storage server',
                      backends)

    def create_volume(self, name, backend=None, capacity_bytes=0, opts=None):
        """Create a volume on the storage server.

        :param opts: free form options, merged with the capacity and the
                     configured NFS client configuration
        """
        self.log.debug('remoteClient: create start')
        opts = dict(opts or {})
        if capacity_bytes:
            opts.setdefault('quota', '%d' % capacity_bytes)
            opts.setdefault('size', '%d' % capacity_bytes)
        if self.configuration.nfs_client_config:
            opts.setdefault('nfsClientConfig',
                            self.configuration.nfs_client_config)

        payload = {'Name': name,
                   'Backend': backend or '',
                   'CapacityBytes': int(capacity_bytes or 0),
                   'Metadata': dict((k, str(v)) for k, v in opts.items()),
                   'Opts': opts}
        self._request('POST', self._url('volumes'), payload)
        self.log.debug('remoteClient: create end')

    def remove_volume(self, name):
        self.log.debug('remoteClient: remove start')
        self._request('DELETE', self._url('volumes', name), {'Name': name})
        self.log.debug('remoteClient: remove end')

    def get_volume(self, name):
        response = self._request('GET', self._url('volumes', name),
                                 {'Name': name})
        data = self._decode(response, 'Volume')
        try:
            return resources.Volume.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise exception.DecodeFailure(url=response.url, reason=repr(e))

    def get_volume_config(self, name):
        response = self._request('GET', self._url('volumes', name, 'config'),
                                 {'Name': name})
        volume_config = self._decode(response, 'VolumeConfig')
        if not isinstance(volume_config, dict):
            raise exception.DecodeFailure(
                url=response.url, reason='VolumeConfig is not an object')
        return volume_config

    def list_volumes(self, backends=None):
        response = self._request('GET', self._url('volumes'),
                                 {'Backends': list(backends or [])})
        volumes = self._decode(response, 'Volumes') or []
        try:
            return [resources.Volume.from_dict(v) for v in volumes]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise exception.DecodeFailure(url=response.url, reason=repr(e))

    def attach(self, name, host):
        """Attach a volume on the server, then mount it on this node.

        :returns: the local mountpoint of the volume
        """
        self.log.debug('remoteClient: attach start')
        response = self._request('PUT', self._url('volumes', name, 'attach'),
                                 {'Name': name, 'Host': host})
        mountpoint = self._decode(response, 'Mountpoint')

        volume_config = self.get_volume_config(name)
        volume = self.get_volume(name)
        mounter = self.mounter_registry.resolve(volume.backend)

        try:
            local_mountpoint = mounter.mount(mountpoint, volume_config)
        except exception.MountFailed:
            with excutils.save_and_reraise_exception():
                self.log.error('Volume %(name)s is attached to %(host)s on '
                               'the storage server but the local mount '
                               'failed', {'name': name, 'host': host})
        self.log.info('Volume %(name)s attached on %(mp)s',
                      {'name': name, 'mp': local_mountpoint})
        return local_mountpoint

    def detach(self, name, host):
        """Unmount a volume from this node, then detach it on the server."""
        self.log.debug('remoteClient: detach start')
        volume = self.get_volume(name)
        mounter = self.mounter_registry.resolve(volume.backend)
        volume_config = self.get_volume_config(name)

        mounter.unmount(volume_config)

        self._request('PUT', self._url('volumes', name, 'detach'),
                      {'Name': name, 'Host': host})

        try:
            mounter.action_after_detach(volume_config)
        except exception.PostDetachFailed:
            with excutils.save_and_reraise_exception():
                self.log.error('Error executing action after detaching '
                               'volume %s', name)
        self.log.info('Volume %s detached', name)
