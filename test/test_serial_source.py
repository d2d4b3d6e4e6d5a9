import math
import struct
import unittest

from fused.serial_source import (
    ACC_LSB_PER_G,
    CMD_RAW_IMU,
    GYRO_LSB_PER_DPS,
    MspMotionSource,
    decode_raw_imu,
    msp_request,
    parse_buffer,
    sample_from_raw,
    xor_checksum,
)


def raw_imu_frame(values, corrupt=False):
    payload = struct.pack("<9h", *values)
    body = bytes([len(payload), CMD_RAW_IMU]) + payload
    checksum = xor_checksum(body) ^ (0xFF if corrupt else 0)
    return b"$M>" + body + bytes([checksum])


class TestMspFraming(unittest.TestCase):
    def test_request(self):
        self.assertEqual(msp_request(CMD_RAW_IMU), b"$M<\x00\x66\x66")

    def test_parse_buffer_handles_noise_and_partial_frames(self):
        frame = raw_imu_frame((1, 2, 3, 4, 5, 6, 7, 8, 9))
        buf = bytearray(b"\x00garbage" + frame + frame[:7])
        frames = list(parse_buffer(buf))
        self.assertEqual(frames, [frame])
        # Partial frame waits for more data
        self.assertEqual(bytes(buf), frame[:7])
        buf.extend(frame[7:])
        self.assertEqual(list(parse_buffer(buf)), [frame])
        self.assertEqual(len(buf), 0)

    def test_decode_raw_imu(self):
        values = (100, -200, 2048, 16, -32, 0, 300, -150, 420)
        self.assertEqual(decode_raw_imu(raw_imu_frame(values)), values)

    def test_decode_rejects_bad_checksum(self):
        with self.assertRaises(ValueError):
            decode_raw_imu(raw_imu_frame((0,) * 9, corrupt=True))

    def test_decode_rejects_other_commands(self):
        frame = bytearray(raw_imu_frame((0,) * 9))
        frame[4] = 101
        with self.assertRaises(ValueError):
            decode_raw_imu(bytes(frame))


class TestSampleScaling(unittest.TestCase):
    def test_scales_and_flips_accelerometer(self):
        values = (0, 0, int(ACC_LSB_PER_G), 0, 0, 0, 10, 20, 30)
        sample = sample_from_raw(values)
        self.assertEqual(sample.gravity, (-0.0, -0.0, -1.0))
        self.assertEqual(sample.magnetic_field, (10.0, 20.0, 30.0))
        self.assertEqual(sample.gyro, (0.0, 0.0, 0.0))

    def test_gyro_bias_and_units(self):
        counts = 90 * GYRO_LSB_PER_DPS
        values = (0, 0, 0, round(counts) + 5, 5, 5, 0, 0, 0)
        sample = sample_from_raw(values, gyro_bias=(5.0, 5.0, 5.0), timestamp=1.5)
        self.assertAlmostEqual(sample.gyro[0], math.radians(round(counts) / GYRO_LSB_PER_DPS))
        self.assertAlmostEqual(sample.gyro[0], math.pi / 2, places=2)
        self.assertEqual(sample.gyro[1:], (0.0, 0.0))
        self.assertEqual(sample.timestamp, 1.5)

    def test_source_defaults(self):
        source = MspMotionSource(device="/dev/null", baud=115200)
        self.assertEqual(source.gyro_bias, (0.0, 0.0, 0.0))
        self.assertEqual(source.name, "msp")
        source.configure(0.01)
        self.assertEqual(source.interval, 0.01)


if __name__ == '__main__':
    unittest.main()
