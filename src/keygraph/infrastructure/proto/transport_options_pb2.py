"""
Protocol buffer bindings for `transport_options.proto`.

The message classes are built at import time from a `FileDescriptorProto`
mirroring the `.proto` schema shipped next to this module, registered in a
private descriptor pool so they never clash with other copies of the schema
loaded into the default pool.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_FieldProto = descriptor_pb2.FieldDescriptorProto


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="keygraph/distruntime/transport_options.proto",
        package="keygraph.distruntime",
        syntax="proto3",
    )
    recv_buf_resp_extra = file_proto.message_type.add(name="RecvBufRespExtra")
    recv_buf_resp_extra.field.add(
        name="tensor_content",
        json_name="tensorContent",
        number=1,
        type=_FieldProto.TYPE_BYTES,
        label=_FieldProto.LABEL_REPEATED,
    )
    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())

DESCRIPTOR = _POOL.FindFileByName("keygraph/distruntime/transport_options.proto")

RecvBufRespExtra = message_factory.GetMessageClass(
    DESCRIPTOR.message_types_by_name["RecvBufRespExtra"]
)
