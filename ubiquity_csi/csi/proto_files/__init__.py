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

"""CSI protocol buffer messages and gRPC service glue.

The modules are generated from csi.proto when this package is imported
(grpcio-tools is needed at runtime), so no generated code is checked in.
"""

import grpc

csi_pb2, csi_pb2_grpc = grpc.protos_and_services(
    'ubiquity_csi/csi/proto_files/csi.proto')
