from concurrent import futures
import errno
import os
import socket
import time

import grpc
from oslo_concurrency import lockutils
from oslo_config import cfg
from oslo_log import log as logging

from ubiquity_csi.csi.proto_files import csi_pb2
from ubiquity_csi.csi.proto_files import csi_pb2_grpc
from ubiquity_csi import exception
from ubiquity_csi.remote import client as remote_client
from ubiquity_csi import version

csi_opts = [
    cfg.StrOpt('endpoint',
               default='[::]:50051',
               help='Address the CSI gRPC server listens on, either '
                    'host:port or unix:///path/to/socket'),
    cfg.StrOpt('plugin_name',
               default='ubiquity',
               help='Plugin name reported by GetPluginInfo'),
    cfg.IntOpt('max_workers',
               default=10,
               min=1,
               help='Number of threads serving gRPC requests'),
]

CONF = cfg.CONF
CONF.register_opts(csi_opts, group='csi')

LOG = logging.getLogger(__name__)

_ONE_DAY_IN_SECONDS = 60 * 60 * 24

# create/delete/publish/unpublish/list run one at a time
synchronized = lockutils.synchronized_with_prefix('ubiquity-csi-')

SUPPORTED_ACCESS_MODES = (
    csi_pb2.VolumeCapability.AccessMode.SINGLE_NODE_WRITER,
    csi_pb2.VolumeCapability.AccessMode.SINGLE_NODE_READER_ONLY,
    csi_pb2.VolumeCapability.AccessMode.MULTI_NODE_READER_ONLY,
    csi_pb2.VolumeCapability.AccessMode.MULTI_NODE_MULTI_WRITER,
)

CONTROLLER_CAPABILITIES = (
    csi_pb2.ControllerServiceCapability.RPC.CREATE_DELETE_VOLUME,
    csi_pb2.ControllerServiceCapability.RPC.PUBLISH_UNPUBLISH_VOLUME,
    csi_pb2.ControllerServiceCapability.RPC.LIST_VOLUMES,
    csi_pb2.ControllerServiceCapability.RPC.GET_CAPACITY,
)

REMOTE_STATUS_CODES = {
    400: grpc.StatusCode.INVALID_ARGUMENT,
    404: grpc.StatusCode.NOT_FOUND,
    409: grpc.StatusCode.ALREADY_EXISTS,
}


def _status_code_for(exc):
    if isinstance(exc, exception.ValidationError):
        return grpc.StatusCode.INVALID_ARGUMENT
    if isinstance(exc, exception.MounterNotFound):
        return grpc.StatusCode.FAILED_PRECONDITION
    if isinstance(exc, exception.RemoteUnavailable):
        return grpc.StatusCode.UNAVAILABLE
    if isinstance(exc, exception.RemoteRejected):
        return REMOTE_STATUS_CODES.get(exc.code, grpc.StatusCode.INTERNAL)
    return grpc.StatusCode.INTERNAL


def _set_error(context, exc):
    context.set_details(exc.msg)
    context.set_code(_status_code_for(exc))


def _set_os_error(context, path, exc):
    if exc.errno == errno.ENOTEMPTY:
        context.set_details('target path %s is not empty' % path)
        context.set_code(grpc.StatusCode.FAILED_PRECONDITION)
        return
    context.set_details('%s: %s' % (path, exc.strerror or exc))
    context.set_code(grpc.StatusCode.INTERNAL)


def _get_hostname(node_id):
    hostname = node_id.values.get('hostname') if node_id else None
    if not hostname:
        raise exception.ValidationError(reason='node id has no hostname')
    return hostname


def _require(value, what):
    if not value:
        raise exception.ValidationError(reason='%s is required' % what)
    return value


class UbiquityServicer(csi_pb2_grpc.IdentityServicer,
                       csi_pb2_grpc.ControllerServicer,
                       csi_pb2_grpc.NodeServicer):
    """Implements the Identity, Controller and Node services."""

    def __init__(self, client=None):
        self.client = client or remote_client.RemoteClient(
            remote_client.storage_api_url())

    # Identity

    def GetPluginInfo(self, req, context):
        response = csi_pb2.GetPluginInfoResponse()
        response.name = CONF.csi.plugin_name
        response.vendor_version = version.version_string()
        return response

    def GetPluginCapabilities(self, req, context):
        response = csi_pb2.GetPluginCapabilitiesResponse()
        response.capabilities.add().service.type = (
            csi_pb2.PluginCapability.Service.CONTROLLER_SERVICE)
        return response

    def Probe(self, req, context):
        response = csi_pb2.ProbeResponse()
        try:
            self.client.activate()
        except exception.UbiquityCSIException as e:
            _set_error(context, e)
        return response

    # Controller

    @synchronized('controller')
    def CreateVolume(self, req, context):
        """CreateVolume implements csi CreateVolume."""
        response = csi_pb2.CreateVolumeResponse()
        try:
            _require(req.name, 'name')
            capacity = (req.capacity_range.limit_bytes or
                        req.capacity_range.required_bytes)
            params = dict(req.parameters)
            self.client.create_volume(req.name,
                                      backend=params.get('backend'),
                                      capacity_bytes=capacity,
                                      opts=params)
            vref = self.client.get_volume(req.name)
        except exception.UbiquityCSIException as e:
            LOG.error('Failed to create volume %(name)s: %(e)s',
                      {'name': req.name, 'e': e.msg})
            _set_error(context, e)
            return response

        response.volume.id = vref.name
        response.volume.capacity_bytes = capacity
        response.volume.attributes['backend'] = vref.backend
        return response

    @synchronized('controller')
    def DeleteVolume(self, req, context):
        """DeleteVolume implements csi DeleteVolume."""
        response = csi_pb2.DeleteVolumeResponse()
        try:
            _require(req.volume_id, 'volume_id')
            self.client.remove_volume(req.volume_id)
        except exception.UbiquityCSIException as e:
            LOG.error('Failed to delete volume %(name)s: %(e)s',
                      {'name': req.volume_id, 'e': e.msg})
            _set_error(context, e)
        return response

    @synchronized('controller')
    def ControllerPublishVolume(self, req, context):
        response = csi_pb2.ControllerPublishVolumeResponse()
        try:
            _require(req.volume_id, 'volume_id')
            host = _get_hostname(req.node_id if req.HasField('node_id')
                                 else None)
            mountpoint = self.client.attach(req.volume_id, host)
        except exception.UbiquityCSIException as e:
            LOG.error('Failed to publish volume %(name)s: %(e)s',
                      {'name': req.volume_id, 'e': e.msg})
            _set_error(context, e)
            return response

        response.publish_info['mountpoint'] = mountpoint
        return response

    @synchronized('controller')
    def ControllerUnpublishVolume(self, req, context):
        response = csi_pb2.ControllerUnpublishVolumeResponse()
        try:
            _require(req.volume_id, 'volume_id')
            host = _get_hostname(req.node_id if req.HasField('node_id')
                                 else None)
            self.client.detach(req.volume_id, host)
        except exception.UbiquityCSIException as e:
            LOG.error('Failed to unpublish volume %(name)s: %(e)s',
                      {'name': req.volume_id, 'e': e.msg})
            _set_error(context, e)
        return response

    def ValidateVolumeCapabilities(self, req, context):
        response = csi_pb2.ValidateVolumeCapabilitiesResponse()
        try:
            _require(req.volume_id, 'volume_id')
            _require(req.volume_capabilities, 'volume_capabilities')
            self.client.get_volume(req.volume_id)
        except exception.UbiquityCSIException as e:
            _set_error(context, e)
            return response

        for capability in req.volume_capabilities:
            if capability.access_mode.mode not in SUPPORTED_ACCESS_MODES:
                response.supported = False
                response.message = 'Unsupported access mode: %s' % (
                    csi_pb2.VolumeCapability.AccessMode.Mode.Name(
                        capability.access_mode.mode))
                return response
        response.supported = True
        return response

    @synchronized('controller')
    def ListVolumes(self, req, context):
        list_response = csi_pb2.ListVolumesResponse()
        try:
            volumes = self.client.list_volumes()
        except exception.UbiquityCSIException as e:
            _set_error(context, e)
            return list_response

        for v in volumes:
            vol = csi_pb2.Volume()
            vol.id = v.name
            vol.capacity_bytes = v.capacity_bytes
            for key, value in v.metadata.items():
                vol.attributes[key] = str(value)
            vol.attributes['backend'] = v.backend
            list_response.entries.add(volume=vol)
        return list_response

    def GetCapacity(self, req, context):
        # the storage server exposes no capacity query, 0 means unknown
        return csi_pb2.GetCapacityResponse(available_capacity=0)

    def ControllerGetCapabilities(self, req, context):
        response = csi_pb2.ControllerGetCapabilitiesResponse()
        for capability in CONTROLLER_CAPABILITIES:
            response.capabilities.add().rpc.type = capability
        return response

    # Node

    @synchronized('controller')
    def NodePublishVolume(self, req, context):
        """Link the target path to the mountpoint set up on publish."""
        response = csi_pb2.NodePublishVolumeResponse()
        try:
            _require(req.volume_id, 'volume_id')
            target_path = _require(req.target_path, 'target_path')
            mountpoint = _require(req.publish_info.get('mountpoint'),
                                  'publish_info mountpoint')
        except exception.ValidationError as e:
            _set_error(context, e)
            return response

        try:
            if os.path.islink(target_path):
                if (os.path.realpath(target_path) ==
                        os.path.realpath(mountpoint)):
                    return response
                os.unlink(target_path)
            elif os.path.isdir(target_path):
                # the orchestrator pre-creates an empty directory
                os.rmdir(target_path)

            LOG.info('Linking %(target)s to %(mp)s',
                     {'target': target_path, 'mp': mountpoint})
            os.symlink(mountpoint, target_path)
        except OSError as e:
            LOG.error('Failed to link %(target)s to %(mp)s: %(e)s',
                      {'target': target_path, 'mp': mountpoint, 'e': e})
            _set_os_error(context, target_path, e)
        return response

    @synchronized('controller')
    def NodeUnpublishVolume(self, req, context):
        response = csi_pb2.NodeUnpublishVolumeResponse()
        try:
            _require(req.volume_id, 'volume_id')
            target_path = _require(req.target_path, 'target_path')
        except exception.ValidationError as e:
            _set_error(context, e)
            return response

        if not os.path.islink(target_path):
            if os.path.lexists(target_path):
                context.set_details('target path %s is not a link to a '
                                    'ubiquity mountpoint' % target_path)
                context.set_code(grpc.StatusCode.FAILED_PRECONDITION)
            return response

        LOG.info('Removing link %s', target_path)
        try:
            os.unlink(target_path)
        except OSError as e:
            LOG.error('Failed to remove link %(target)s: %(e)s',
                      {'target': target_path, 'e': e})
            _set_os_error(context, target_path, e)
        return response

    def GetNodeID(self, req, context):
        response = csi_pb2.GetNodeIDResponse()
        response.node_id.values['hostname'] = socket.gethostname()
        return response

    def NodeProbe(self, req, context):
        return csi_pb2.NodeProbeResponse()

    def NodeGetCapabilities(self, req, context):
        return csi_pb2.NodeGetCapabilitiesResponse()


def build_server(servicer, endpoint=None, max_workers=None):
    """Create (but do not start) a gRPC server exposing all services.

    :returns: (server, bound port)
    """
    server = grpc.server(futures.ThreadPoolExecutor(
        max_workers=max_workers or CONF.csi.max_workers))
    csi_pb2_grpc.add_ControllerServicer_to_server(servicer, server)
    csi_pb2_grpc.add_IdentityServicer_to_server(servicer, server)
    csi_pb2_grpc.add_NodeServicer_to_server(servicer, server)
    port = server.add_insecure_port(endpoint or CONF.csi.endpoint)
    return server, port


def serve(client=None):
    servicer = UbiquityServicer(client)
    try:
        servicer.client.activate()
    except exception.UbiquityCSIException as e:
        LOG.warning('Unable to activate backends, will retry on Probe: %s',
                    e.msg)

    server, port = build_server(servicer)
    server.start()
    LOG.info('Serving CSI at: %s', CONF.csi.endpoint)

    try:
        while True:
            time.sleep(_ONE_DAY_IN_SECONDS)
    except KeyboardInterrupt:
        server.stop(0)
