"""Centralized constants, thresholds, and column aliases for the alignment pipeline."""
from __future__ import annotations

# Output grid
DEFAULT_TARGET_HZ = 100
GRID_ROUNDING_TOL_MS = 1e-6   # grid points beyond end_time + tol are dropped

# Gap classification (multiples of the grid interval)
GAP_THRESHOLD_FACTOR = 2.0      # >= 2x interval is data loss
JITTER_TOLERANCE_FACTOR = 0.5   # within 0.5x interval counts as a real sample

# SLERP
SLERP_LINEAR_THRESHOLD = 0.9995  # cos(half angle) above this -> normalized lerp
QUAT_EPS = 1e-12

# Chunking
SAMPLES_PER_CHUNK = 6000        # 60 s at 100 Hz
CHUNK_META_OVERHEAD_BYTES = 200

# Device byte codes: upper nibble joint (1=left, 2=right), lower nibble position (1=shin, 2=thigh)
DEVICE_LEFT_SHIN = 0x11
DEVICE_LEFT_THIGH = 0x12
DEVICE_RIGHT_SHIN = 0x21
DEVICE_RIGHT_THIGH = 0x22

# Joint labels carried in chunks
JOINT_LEFT = "left_knee"
JOINT_RIGHT = "right_knee"

# CSV column aliases for raw sample dumps
SENSOR_CANDS = ["sensor_id", "sensor", "device_id", "device", "deviceid", "location"]
TIME_CANDS = ["timestamp_ms", "timestamp", "time_ms", "t_ms", "t", "ts"]
QW = ["quat_w", "w", "qw", "q_w", "quaternion_w"]
QX = ["quat_x", "x", "qx", "q_x", "quaternion_x"]
QY = ["quat_y", "y", "qy", "q_y", "quaternion_y"]
QZ = ["quat_z", "z", "qz", "q_z", "quaternion_z"]
