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

"""Volume resources exchanged with the Ubiquity storage server."""

SPECTRUM_SCALE = 'spectrum-scale'
SPECTRUM_SCALE_NFS = 'spectrum-scale-nfs'
SOFTLAYER_NFS = 'softlayer-nfs'
SCBE = 'scbe'

# the option name of the fstype and also the key in the volume config
OPTION_NAME_FOR_VOLUME_FS_TYPE = 'fstype'


class Volume(object):
    """A volume as known by the remote storage server.

    The server is the source of truth; instances only live for the
    duration of a single request.
    """

    def __init__(self, name, backend='', capacity_bytes=0, metadata=None,
                 mountpoint=''):
        self.name = name
        self.backend = backend or ''
        self.capacity_bytes = int(capacity_bytes or 0)
        self.metadata = dict(metadata or {})
        self.mountpoint = mountpoint or ''

    @classmethod
    def from_dict(cls, data):
        """Build a Volume from the server's JSON representation.

        Raises KeyError/TypeError/ValueError on malformed input, callers
        translate those into a decode failure.
        """
        return cls(name=data['Name'],
                   backend=data.get('Backend'),
                   capacity_bytes=data.get('CapacityBytes'),
                   metadata=data.get('Metadata'),
                   mountpoint=data.get('Mountpoint'))

    def to_dict(self):
        return {'Name': self.name,
                'Backend': self.backend,
                'CapacityBytes': self.capacity_bytes,
                'Metadata': self.metadata,
                'Mountpoint': self.mountpoint}

    def __eq__(self, other):
        return isinstance(other, Volume) and self.to_dict() == other.to_dict()

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return ('Volume(name=%(Name)r, backend=%(Backend)r, '
                'capacity_bytes=%(CapacityBytes)r)' % self.to_dict())
