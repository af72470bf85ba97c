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

"""Utilities and helper functions."""

from oslo_concurrency import processutils
from oslo_config import cfg


utils_opts = [
    cfg.StrOpt('root_helper',
               default='sudo',
               help='Command prefix used to run local mount and device '
                    'commands as root'),
]

CONF = cfg.CONF
CONF.register_opts(utils_opts)


def get_root_helper():
    return CONF.root_helper


def execute(*cmd, **kwargs):
    """Convenience wrapper around oslo's execute() method."""
    if kwargs.get('run_as_root') and 'root_helper' not in kwargs:
        kwargs['root_helper'] = get_root_helper()
    return processutils.execute(*cmd, **kwargs)


def format_url(base_url, *parts):
    """Join the storage API base url with the given path segments."""
    return '/'.join([base_url.rstrip('/')] + [str(p).strip('/')
                                              for p in parts])
