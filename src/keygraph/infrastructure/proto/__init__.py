from .transport_options_pb2 import DESCRIPTOR, RecvBufRespExtra
from ._tensor_content import decode_tensor_content, encode_tensor_content

__all__ = [
    "DESCRIPTOR",
    "RecvBufRespExtra",
    "encode_tensor_content",
    "decode_tensor_content",
]
