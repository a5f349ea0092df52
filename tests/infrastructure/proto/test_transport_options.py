import unittest

import numpy as np

from keygraph.infrastructure.proto import (
    DESCRIPTOR,
    RecvBufRespExtra,
    decode_tensor_content,
    encode_tensor_content,
)


class TestRecvBufRespExtra(unittest.TestCase):
    def test_descriptor(self):
        desc = RecvBufRespExtra.DESCRIPTOR
        self.assertEqual(desc.full_name, "keygraph.distruntime.RecvBufRespExtra")
        self.assertEqual(desc.file.name, DESCRIPTOR.name)
        field = desc.fields_by_name["tensor_content"]
        self.assertEqual(field.number, 1)

    def test_wire_format(self):
        msg = RecvBufRespExtra(tensor_content=[b"ab", b""])
        # field 1, wire type 2 (length-delimited), repeated in order
        self.assertEqual(msg.SerializeToString(), b"\x0a\x02ab\x0a\x00")

    def test_parse(self):
        msg = RecvBufRespExtra()
        msg.ParseFromString(b"\x0a\x03xyz\x0a\x01q")
        self.assertEqual(list(msg.tensor_content), [b"xyz", b"q"])

    def test_empty_message_serializes_to_nothing(self):
        self.assertEqual(RecvBufRespExtra().SerializeToString(), b"")


class TestTensorContent(unittest.TestCase):
    def test_chunks_and_reassembles(self):
        x = np.arange(10, dtype=np.float32)
        msg = encode_tensor_content(x, chunk_size=16)
        self.assertEqual([len(c) for c in msg.tensor_content], [16, 16, 8])

        wire = msg.SerializeToString()
        received = RecvBufRespExtra.FromString(wire)
        out = decode_tensor_content(received, np.float32, (2, 5))
        np.testing.assert_array_equal(out, x.reshape(2, 5))
        self.assertTrue(out.flags.writeable)

    def test_single_chunk_by_default(self):
        x = np.ones((3, 4), dtype=np.float64)
        msg = encode_tensor_content(x)
        self.assertEqual(len(msg.tensor_content), 1)
        np.testing.assert_array_equal(decode_tensor_content(msg, np.float64, (3, 4)), x)

    def test_non_contiguous_input(self):
        x = np.arange(6, dtype=np.int32).reshape(2, 3).T
        msg = encode_tensor_content(x, chunk_size=4)
        np.testing.assert_array_equal(decode_tensor_content(msg, np.int32, (3, 2)), x)

    def test_empty_array_has_no_chunks(self):
        msg = encode_tensor_content(np.zeros((0, 3), dtype=np.float32))
        self.assertEqual(len(msg.tensor_content), 0)
        out = decode_tensor_content(msg, np.float32, (0, 3))
        self.assertEqual(out.shape, (0, 3))

    def test_invalid_chunk_size_raises(self):
        with self.assertRaises(ValueError):
            encode_tensor_content(np.zeros(2), chunk_size=0)

    def test_size_mismatch_raises(self):
        msg = encode_tensor_content(np.zeros(4, dtype=np.float32))
        with self.assertRaises(ValueError):
            decode_tensor_content(msg, np.float32, (5,))


if __name__ == "__main__":
    unittest.main()
