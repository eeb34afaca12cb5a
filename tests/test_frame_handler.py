#!/usr/bin/env python3
"""
帧处理器测试
============

测试M-Bus短帧、长帧的封装和校验。
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from em_admin.core.frame_handler import (
    FrameHandler,
    FrameKind,
    build_long,
    validate_long,
)
from em_admin.core.exceptions import (
    InvalidPayload,
    MalformedFrame,
    FrameTooSmall,
    BadStart,
    BadStop,
    LengthMismatch,
    BufferTooSmall,
    BadChecksum,
)
from em_admin.core.structures import ResponseHeader


class TestBuildShort:
    """测试短帧封装"""

    def test_req_ud2(self):
        """REQ_UD2 请求帧"""
        assert FrameHandler.build_short(0x7B, 0xFE) == bytes.fromhex("107bfe7916")

    def test_out_of_range(self):
        with pytest.raises(InvalidPayload):
            FrameHandler.build_short(0x100, 0xFE)


class TestBuildLong:
    """测试长帧封装"""

    def test_get_params_request(self):
        """读取参数请求的完整字节"""
        frame = FrameHandler.build_long(0x53, 0xFE, 0x51, bytes([0x0F, 0x04, 0x00, 0x00, 0x60]))
        assert frame == bytes.fromhex("6808086853fe510f040000601516")

    def test_empty_payload(self):
        frame = FrameHandler.build_long(0x53, 0xFE, 0x51, b"")
        assert frame == bytes([0x68, 3, 3, 0x68, 0x53, 0xFE, 0x51, 0xA2, 0x16])

    def test_length_fields(self):
        """两个长度字节都等于 3 + 负载长度"""
        frame = FrameHandler.build_long(0x53, 0xFE, 0x51, bytes(10))
        assert frame[1] == frame[2] == 13
        assert len(frame) == 19

    def test_max_payload(self):
        """252字节是能编码的最大负载"""
        frame = FrameHandler.build_long(0x53, 0xFE, 0x51, bytes(252))
        assert frame[1] == 0xFF
        assert len(frame) == 261

    def test_payload_too_long(self):
        with pytest.raises(InvalidPayload):
            FrameHandler.build_long(0x53, 0xFE, 0x51, bytes(253))

    def test_payload_none(self):
        with pytest.raises(InvalidPayload):
            FrameHandler.build_long(0x53, 0xFE, 0x51, None)

    def test_module_alias(self):
        payload = b"\x01\x02"
        assert build_long(0x53, 0xFE, 0x51, payload) == FrameHandler.build_long(
            0x53, 0xFE, 0x51, payload
        )


class TestValidateShort:
    """测试短帧校验"""

    def test_valid(self):
        frame = FrameHandler.validate_short(bytes.fromhex("107bfe7916"))
        assert frame.kind is FrameKind.SHORT
        assert frame.control == 0x7B
        assert frame.address == 0xFE
        assert frame.control_info is None

    def test_too_small(self):
        with pytest.raises(FrameTooSmall):
            FrameHandler.validate_short(bytes.fromhex("107bfe79"))

    def test_bad_start(self):
        with pytest.raises(BadStart):
            FrameHandler.validate_short(bytes.fromhex("117bfe7916"))

    def test_bad_stop(self):
        with pytest.raises(BadStop):
            FrameHandler.validate_short(bytes.fromhex("107bfe7917"))

    def test_bad_checksum(self):
        with pytest.raises(BadChecksum):
            FrameHandler.validate_short(bytes.fromhex("107bfe7816"))

    def test_single_bit_flip_detected(self):
        """短帧中任意单个比特翻转都会被拒绝"""
        raw = FrameHandler.build_short(0x7B, 0xFE)
        for index in range(len(raw)):
            for bit in range(8):
                corrupted = bytearray(raw)
                corrupted[index] ^= 1 << bit
                with pytest.raises(MalformedFrame):
                    FrameHandler.validate_short(bytes(corrupted))


class TestValidateLong:
    """测试长帧校验"""

    def test_round_trip(self):
        """任意长度的负载封装后都能原样解析"""
        for size in range(0, 253):
            payload = bytes((i * 7 + size) & 0xFF for i in range(size))
            raw = FrameHandler.build_long(0x08, 0xFE, 0x72, payload)
            frame, consumed = FrameHandler.validate_long(raw)
            assert consumed == len(raw) == size + 9
            assert frame.kind is FrameKind.LONG
            assert frame.control == 0x08
            assert frame.address == 0xFE
            assert frame.control_info == 0x72
            assert frame.payload == payload

    def test_trailing_bytes_ignored(self):
        """缓冲区末尾多余的数据不参与解析"""
        raw = FrameHandler.build_long(0x08, 0xFE, 0x72, b"\x01\x02\x03")
        frame, consumed = validate_long(raw + b"\xAA\xBB\xCC")
        assert consumed == len(raw)
        assert frame.raw == raw
        assert frame.payload == b"\x01\x02\x03"

    def test_single_bit_flip_detected(self):
        """有效帧中任意单个比特翻转都会被拒绝"""
        raw = FrameHandler.build_long(0x53, 0xFE, 0x51, bytes([0x0F, 0x04, 0x00, 0x00, 0x60]))
        for index in range(len(raw)):
            for bit in range(8):
                corrupted = bytearray(raw)
                corrupted[index] ^= 1 << bit
                with pytest.raises(MalformedFrame):
                    FrameHandler.validate_long(bytes(corrupted))

    def test_too_small(self):
        """小于9字节的缓冲区"""
        with pytest.raises(FrameTooSmall):
            FrameHandler.validate_long(bytes([0x68, 3, 3, 0x68, 0x53, 0xFE, 0x51, 0xA2]))

    def test_bad_start(self):
        raw = bytearray(FrameHandler.build_long(0x53, 0xFE, 0x51, b""))
        raw[3] = 0x69
        with pytest.raises(BadStart):
            FrameHandler.validate_long(bytes(raw))

    def test_length_mismatch(self):
        raw = bytearray(FrameHandler.build_long(0x53, 0xFE, 0x51, b"\x00"))
        raw[2] = 3
        with pytest.raises(LengthMismatch):
            FrameHandler.validate_long(bytes(raw))

    def test_length_too_small(self):
        """声明长度小于3时无法容纳C、A、CI"""
        with pytest.raises(LengthMismatch):
            FrameHandler.validate_long(bytes([0x68, 2, 2, 0x68, 0x53, 0xFE, 0x51, 0xA2, 0x16]))

    def test_buffer_too_small(self):
        """声明的帧长度超过实际收到的数据"""
        raw = FrameHandler.build_long(0x53, 0xFE, 0x51, bytes(10))
        with pytest.raises(BufferTooSmall):
            FrameHandler.validate_long(raw[:-1])

    def test_bad_stop(self):
        raw = bytearray(FrameHandler.build_long(0x53, 0xFE, 0x51, b"\x01"))
        raw[-1] = 0x17
        with pytest.raises(BadStop):
            FrameHandler.validate_long(bytes(raw))

    def test_bad_checksum(self):
        raw = bytearray(FrameHandler.build_long(0x53, 0xFE, 0x51, b"\x01"))
        raw[-2] ^= 0xFF
        with pytest.raises(BadChecksum):
            FrameHandler.validate_long(bytes(raw))

    def test_malformed_errors_share_base_class(self):
        for error_class in (FrameTooSmall, BadStart, BadStop, LengthMismatch, BufferTooSmall, BadChecksum):
            assert issubclass(error_class, MalformedFrame)


class TestMBusFrame:
    """测试解析后的帧对象"""

    def test_response_header(self):
        header = ResponseHeader(0x12345678, 0x12FA, 1, 7, 3, 0, 0)
        raw = FrameHandler.build_long(0x08, 0xFE, 0x72, header.pack() + b"\x01\x02")
        frame, _ = FrameHandler.validate_long(raw)
        assert frame.header == header
        assert frame.application_data == b"\x01\x02"
        assert len(frame) == len(raw)

    def test_no_header_for_other_ci(self):
        raw = FrameHandler.build_long(0x53, 0xFE, 0x51, bytes(12))
        frame, _ = FrameHandler.validate_long(raw)
        assert frame.header is None
