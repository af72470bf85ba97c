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
from unittest import mock

import requests
from requests_mock.contrib import fixture as rm_fixture

from ubiquity_csi import exception
from ubiquity_csi.remote import client
from ubiquity_csi.remote.mounters import nfs
from ubiquity_csi.remote.mounters import registry
from ubiquity_csi import resources
from ubiquity_csi import test

GiB = 1024 ** 3


class RemoteClientTestCase(test.TestCase):

    def setUp(self):
        super(RemoteClientTestCase, self).setUp()
        self.requests = self.useFixture(rm_fixture.Fixture())
        self.flags(address='10.0.0.1', port=9999, group='ubiquity_server')
        self.url = client.storage_api_url()

        self.mounter = mock.Mock()
        self.mounter.mount.return_value = '/ubiquity/local'
        self.registry = mock.Mock()
        self.registry.resolve.return_value = self.mounter
        self.client = client.RemoteClient(self.url,
                                          mounter_registry=self.registry)

        self.volume = {'Name': 'vol1',
                       'Backend': resources.SPECTRUM_SCALE,
                       'CapacityBytes': GiB,
                       'Metadata': {'filesystem': 'gold'}}
        self.volume_config = {'filesystem': 'gold', 'fileset': 'vol1'}

    def _register_volume(self):
        self.requests.get(self.url + '/volumes/vol1',
                          json={'Volume': self.volume})
        self.requests.get(self.url + '/volumes/vol1/config',
                          json={'VolumeConfig': self.volume_config})

    def _methods_and_paths(self):
        return [(r.method, r.path) for r in self.requests.request_history]

    def test_storage_api_url(self):
        self.assertEqual('http://10.0.0.1:9999/ubiquity_storage', self.url)

    def test_activate_once(self):
        activate = self.requests.post(self.url + '/activate', json={})

        self.client.activate()
        self.client.activate()

        self.assertEqual(1, activate.call_count)
        self.assertEqual({'Backends': ['spectrum-scale', 'scbe'],
                          'Opts': {}},
                         activate.last_request.json())

    def test_activate_explicit_backends(self):
        activate = self.requests.post(self.url + '/activate', json={})

        self.client.activate(backends=['scbe'])

        self.assertEqual(['scbe'], activate.last_request.json()['Backends'])

    def test_activate_failure_is_retried(self):
        activate = self.requests.post(self.url + '/activate',
                                      [{'status_code': 500,
                                        'json': {'Err': 'not ready'}},
                                       {'json': {}}])

        self.assertRaises(exception.RemoteRejected, self.client.activate)
        self.client.activate()

        self.assertEqual(2, activate.call_count)

    def test_create_volume_capacity(self):
        create = self.requests.post(self.url + '/volumes', json={})

        self.client.create_volume('vol1', backend=resources.SPECTRUM_SCALE,
                                  capacity_bytes=100 * GiB,
                                  opts={'filesystem': 'gold'})

        body = create.last_request.json()
        self.assertEqual('vol1', body['Name'])
        self.assertEqual('spectrum-scale', body['Backend'])
        self.assertEqual(107374182400, body['CapacityBytes'])
        self.assertEqual('107374182400', body['Opts']['quota'])
        self.assertEqual('107374182400', body['Opts']['size'])
        self.assertEqual('gold', body['Opts']['filesystem'])
        self.assertNotIn('nfsClientConfig', body['Opts'])

    def test_create_volume_keeps_explicit_quota(self):
        create = self.requests.post(self.url + '/volumes', json={})

        self.client.create_volume('vol1', capacity_bytes=GiB,
                                  opts={'quota': '5G'})

        self.assertEqual('5G', create.last_request.json()['Opts']['quota'])

    def test_create_volume_nfs_client_config(self):
        self.flags(nfs_client_config='10.0.0.0/24(Access_Type=RW)')
        create = self.requests.post(self.url + '/volumes', json={})

        self.client.create_volume('vol1',
                                  backend=resources.SPECTRUM_SCALE_NFS)

        self.assertEqual('10.0.0.0/24(Access_Type=RW)',
                         create.last_request.json()['Opts']['nfsClientConfig'])

    def test_create_volume_nfs_client_config_not_overridden(self):
        self.flags(nfs_client_config='10.0.0.0/24(Access_Type=RW)')
        create = self.requests.post(self.url + '/volumes', json={})

        self.client.create_volume('vol1',
                                  backend=resources.SPECTRUM_SCALE_NFS,
                                  opts={'nfsClientConfig': 'mine'})

        self.assertEqual('mine',
                         create.last_request.json()['Opts']['nfsClientConfig'])

    def test_create_volume_rejected(self):
        self.requests.post(self.url + '/volumes', status_code=409,
                           json={'Err': 'Volume already exists'})

        exc = self.assertRaises(exception.RemoteRejected,
                                self.client.create_volume, 'vol1')
        self.assertEqual(409, exc.code)
        self.assertEqual('Volume already exists', exc.description)

    def test_create_volume_rejected_plain_text(self):
        self.requests.post(self.url + '/volumes', status_code=500,
                           text='internal error')

        exc = self.assertRaises(exception.RemoteRejected,
                                self.client.create_volume, 'vol1')
        self.assertEqual(500, exc.code)
        self.assertEqual('internal error', exc.description)

    def test_server_unreachable(self):
        self.requests.post(self.url + '/volumes',
                           exc=requests.exceptions.ConnectionError)

        self.assertRaises(exception.RemoteUnavailable,
                          self.client.create_volume, 'vol1')

    def test_remove_volume(self):
        remove = self.requests.delete(self.url + '/volumes/vol1', json={})

        self.client.remove_volume('vol1')

        self.assertEqual({'Name': 'vol1'}, remove.last_request.json())

    def test_get_volume(self):
        self._register_volume()

        vol = self.client.get_volume('vol1')

        self.assertEqual(resources.Volume('vol1', 'spectrum-scale', GiB,
                                          {'filesystem': 'gold'}), vol)

    def test_get_volume_not_json(self):
        self.requests.get(self.url + '/volumes/vol1', text='<html/>')

        self.assertRaises(exception.DecodeFailure,
                          self.client.get_volume, 'vol1')

    def test_get_volume_missing_key(self):
        self.requests.get(self.url + '/volumes/vol1', json={'Other': {}})

        self.assertRaises(exception.DecodeFailure,
                          self.client.get_volume, 'vol1')

    def test_get_volume_config_not_an_object(self):
        self.requests.get(self.url + '/volumes/vol1/config',
                          json={'VolumeConfig': 'nope'})

        self.assertRaises(exception.DecodeFailure,
                          self.client.get_volume_config, 'vol1')

    def test_list_volumes(self):
        self.requests.get(self.url + '/volumes',
                          json={'Volumes': [self.volume,
                                            {'Name': 'vol2',
                                             'Backend': 'scbe'}]})

        volumes = self.client.list_volumes()

        self.assertEqual(['vol1', 'vol2'], [v.name for v in volumes])
        self.assertEqual('scbe', volumes[1].backend)

    def test_list_volumes_empty(self):
        self.requests.get(self.url + '/volumes', json={'Volumes': None})

        self.assertEqual([], self.client.list_volumes())

    def test_attach(self):
        attach = self.requests.put(self.url + '/volumes/vol1/attach',
                                   json={'Mountpoint': '/gpfs/fs1/vol1'})
        self._register_volume()

        mountpoint = self.client.attach('vol1', 'node1')

        self.assertEqual('/ubiquity/local', mountpoint)
        self.assertEqual({'Name': 'vol1', 'Host': 'node1'},
                         attach.last_request.json())
        self.assertEqual(
            [('PUT', '/ubiquity_storage/volumes/vol1/attach'),
             ('GET', '/ubiquity_storage/volumes/vol1/config'),
             ('GET', '/ubiquity_storage/volumes/vol1')],
            self._methods_and_paths())
        self.registry.resolve.assert_called_once_with('spectrum-scale')
        self.mounter.mount.assert_called_once_with('/gpfs/fs1/vol1',
                                                   self.volume_config)

    def test_attach_get_volume_failure_does_not_mount(self):
        self.requests.put(self.url + '/volumes/vol1/attach',
                          json={'Mountpoint': '/gpfs/fs1/vol1'})
        self.requests.get(self.url + '/volumes/vol1/config',
                          json={'VolumeConfig': self.volume_config})
        self.requests.get(self.url + '/volumes/vol1', status_code=404,
                          json={'Err': 'volume not found'})

        exc = self.assertRaises(exception.RemoteRejected,
                                self.client.attach, 'vol1', 'node1')

        self.assertEqual(404, exc.code)
        self.assertFalse(self.registry.resolve.called)
        self.assertFalse(self.mounter.mount.called)

    def test_attach_rejected_does_not_mount(self):
        self.requests.put(self.url + '/volumes/vol1/attach', status_code=400,
                          json={'Err': 'bad host'})

        self.assertRaises(exception.RemoteRejected,
                          self.client.attach, 'vol1', 'node1')
        self.assertEqual(1, len(self.requests.request_history))
        self.assertFalse(self.mounter.mount.called)

    def test_attach_unknown_backend(self):
        self.requests.put(self.url + '/volumes/vol1/attach',
                          json={'Mountpoint': '/gpfs/fs1/vol1'})
        self._register_volume()
        self.registry.resolve.side_effect = exception.MounterNotFound(
            backend='spectrum-scale')

        self.assertRaises(exception.MounterNotFound,
                          self.client.attach, 'vol1', 'node1')
        self.assertFalse(self.mounter.mount.called)

    def test_attach_mount_failure(self):
        self.requests.put(self.url + '/volumes/vol1/attach',
                          json={'Mountpoint': '/gpfs/fs1/vol1'})
        self._register_volume()
        self.mounter.mount.side_effect = exception.MountFailed(detail='boom')

        self.assertRaises(exception.MountFailed,
                          self.client.attach, 'vol1', 'node1')

    def test_detach(self):
        self._register_volume()
        detach = self.requests.put(self.url + '/volumes/vol1/detach',
                                   json={})

        def after_detach(volume_config):
            self.assertTrue(detach.called)
            self.assertEqual(self.volume_config, volume_config)

        def unmount(volume_config):
            self.assertFalse(detach.called)

        self.mounter.unmount.side_effect = unmount
        self.mounter.action_after_detach.side_effect = after_detach

        self.client.detach('vol1', 'node1')

        self.assertEqual({'Name': 'vol1', 'Host': 'node1'},
                         detach.last_request.json())
        self.mounter.unmount.assert_called_once_with(self.volume_config)
        self.mounter.action_after_detach.assert_called_once_with(
            self.volume_config)

    def test_detach_unmount_failure_skips_remote_detach(self):
        self._register_volume()
        detach = self.requests.put(self.url + '/volumes/vol1/detach',
                                   json={})
        self.mounter.unmount.side_effect = exception.UnmountFailed(
            detail='busy')

        self.assertRaises(exception.UnmountFailed,
                          self.client.detach, 'vol1', 'node1')
        self.assertFalse(detach.called)
        self.assertFalse(self.mounter.action_after_detach.called)

    def test_detach_remote_failure_skips_after_detach(self):
        self._register_volume()
        self.requests.put(self.url + '/volumes/vol1/detach', status_code=500,
                          json={'Err': 'boom'})

        self.assertRaises(exception.RemoteRejected,
                          self.client.detach, 'vol1', 'node1')
        self.assertTrue(self.mounter.unmount.called)
        self.assertFalse(self.mounter.action_after_detach.called)

    def test_detach_after_detach_failure(self):
        self._register_volume()
        self.requests.put(self.url + '/volumes/vol1/detach', json={})
        self.mounter.action_after_detach.side_effect = (
            exception.PostDetachFailed(detail='multipath -f failed'))

        self.assertRaises(exception.PostDetachFailed,
                          self.client.detach, 'vol1', 'node1')


class NfsAttachDetachTestCase(test.TestCase):
    """Attach and detach through the registry's real NFS mounter."""

    def setUp(self):
        super(NfsAttachDetachTestCase, self).setUp()
        self.requests = self.useFixture(rm_fixture.Fixture())
        self.flags(nfs_mount_root=self.tempdir)
        self.url = client.storage_api_url()
        self.executor = mock.Mock(return_value=('', ''))
        self.client = client.RemoteClient(
            self.url,
            mounter_registry=registry.MounterRegistry(executor=self.executor))
        self.is_mounted = self.mock_object(nfs.NfsMounter, '_is_mounted')

        self.share = 'srv:/export/v'
        self.local = os.path.join(self.tempdir, 'export/v')
        self.requests.put(self.url + '/volumes/v/attach',
                          json={'Mountpoint': self.share})
        self.requests.get(self.url + '/volumes/v',
                          json={'Volume': {'Name': 'v',
                                           'Backend': 'spectrum-scale-nfs'}})

    def _register_config(self, volume_config):
        self.requests.get(self.url + '/volumes/v/config',
                          json={'VolumeConfig': volume_config})

    def test_attach_then_detach(self):
        self._register_config({'nfs_share': self.share})
        detach = self.requests.put(self.url + '/volumes/v/detach', json={})
        self.is_mounted.side_effect = [False, True]

        self.assertEqual(self.local, self.client.attach('v', 'node1'))
        self.client.detach('v', 'node1')

        self.assertTrue(detach.called)
        self.assertEqual(
            [mock.call('mount', '-t', 'nfs', self.share, self.local,
                       run_as_root=True),
             mock.call('umount', self.local, run_as_root=True)],
            self.executor.call_args_list)
        self.assertFalse(os.path.exists(self.local))

    def test_detach_retry_after_remote_failure(self):
        self._register_config({'nfs_share': self.share})
        detach = self.requests.put(self.url + '/volumes/v/detach',
                                   [{'status_code': 500,
                                     'json': {'Err': 'busy'}},
                                    {'json': {}}])
        self.is_mounted.side_effect = [False, True, False]
        self.client.attach('v', 'node1')

        self.assertRaises(exception.RemoteRejected,
                          self.client.detach, 'v', 'node1')
        self.client.detach('v', 'node1')

        self.assertEqual(2, detach.call_count)
        self.assertEqual(1, [c[0][0] for c in
                             self.executor.call_args_list].count('umount'))

    def test_attach_without_share_does_not_mount(self):
        self._register_config({})
        self.is_mounted.return_value = False

        self.assertRaises(exception.MountFailed,
                          self.client.attach, 'v', 'node1')
        self.assertFalse(self.executor.called)
