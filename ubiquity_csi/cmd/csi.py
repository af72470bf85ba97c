#!/usr/bin/env python
#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at
#
#        http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.

"""Starter script for the Ubiquity CSI Service."""

import logging as python_logging
import sys

from oslo_config import cfg
from oslo_log import log as logging

# Need to register global_opts
from ubiquity_csi.csi import csi_service
from ubiquity_csi import version


CONF = cfg.CONF


def main():
    logging.register_options(CONF)
    CONF(sys.argv[1:], project='ubiquity_csi',
         version=version.version_string())
    logging.setup(CONF, "ubiquity_csi")
    python_logging.captureWarnings(True)
    csi_service.serve()


if __name__ == '__main__':
    main()
