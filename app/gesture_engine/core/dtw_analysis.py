"""
DTW Analysis Module for the Motion Analyzer gesture engine.

Triển khai Weighted Dynamic Time Warping để so sánh một động tác vừa
capture với động tác mẫu.

Tại sao cần DTW thay vì so sánh trực tiếp?
    - Người tập di chuyển với tốc độ khác nhau
    - Hai lần thực hiện có số frame khác nhau
    - DTW "kéo giãn" thời gian để tìm sự tương đồng tối ưu

Công thức:
    cost[i][j] = d(a[i-1], b[j-1]) + min(cost[i-1][j], cost[i][j-1], cost[i-1][j-1])
    cost[0][0] = 0, hàng/cột 0 còn lại = +inf

Chỉ giữ 2 hàng của ma trận nên bộ nhớ là O(min(m, n)).

Author: Motion Analyzer Team
Version: 1.0.0
"""

from dataclasses import dataclass
from typing import Callable, List, TypeVar
import math

import numpy as np
from fastdtw import fastdtw

from .data_types import JointWeights, NUM_JOINTS
from .exceptions import InvalidInputError
from .kinematics import weighted_frame_distances

T = TypeVar("T")

BACKEND_EXACT = "exact"
BACKEND_FAST = "fast"
DTW_BACKENDS = (BACKEND_EXACT, BACKEND_FAST)


@dataclass
class DTWResult:
    """
    Kết quả phân tích DTW.

    Attributes:
        distance: Khoảng cách DTW (càng nhỏ càng tốt).
        normalized_distance: Distance chia cho độ dài chuỗi dài hơn.
        length1: Số frame chuỗi thứ nhất.
        length2: Số frame chuỗi thứ hai.
        backend: "exact" hoặc "fast".
    """
    distance: float
    normalized_distance: float
    length1: int
    length2: int
    backend: str = BACKEND_EXACT


def compute_dtw_distance(
    seq1: List[T],
    seq2: List[T],
    dist: Callable[[T, T], float]
) -> float:
    """
    Generic DTW giữa 2 chuỗi với hàm khoảng cách tùy ý.

    Args:
        seq1: Chuỗi thứ nhất (m >= 1).
        seq2: Chuỗi thứ hai (n >= 1).
        dist: Hàm khoảng cách giữa 2 phần tử.

    Returns:
        float: cost[m][n].

    Raises:
        InvalidInputError: Nếu một trong hai chuỗi rỗng.
    """
    m, n = len(seq1), len(seq2)
    if m == 0 or n == 0:
        raise InvalidInputError("DTW requires non-empty sequences")

    prev = [0.0] + [math.inf] * n
    for i in range(1, m + 1):
        cur = [math.inf] * (n + 1)
        for j in range(1, n + 1):
            cost = dist(seq1[i - 1], seq2[j - 1])
            cur[j] = cost + min(
                prev[j],      # insertion
                cur[j - 1],   # deletion
                prev[j - 1]   # match
            )
        prev = cur

    return prev[n]


def _exact_weighted_dtw(frames1: np.ndarray, frames2: np.ndarray, weights: JointWeights) -> float:
    # Pointwise cost is symmetric, so rows can run over the longer sequence.
    if len(frames2) > len(frames1):
        frames1, frames2 = frames2, frames1

    n = len(frames2)
    prev = [0.0] + [math.inf] * n
    for i in range(len(frames1)):
        costs = weighted_frame_distances(frames1[i], frames2, weights).tolist()
        cur = [math.inf] * (n + 1)
        for j in range(1, n + 1):
            cur[j] = costs[j - 1] + min(prev[j], cur[j - 1], prev[j - 1])
        prev = cur

    return prev[n]


def _fast_weighted_dtw(frames1: np.ndarray, frames2: np.ndarray, weights: JointWeights, radius: int) -> float:
    mask = weights.active_mask
    w = weights.values[mask]
    total = weights.total

    def pose_dist(a: np.ndarray, b: np.ndarray) -> float:
        diff = a.reshape(NUM_JOINTS, 3)[mask] - b.reshape(NUM_JOINTS, 3)[mask]
        return float(np.sqrt((diff ** 2).sum(axis=1)) @ w / total)

    distance, _ = fastdtw(
        frames1.reshape(len(frames1), -1),
        frames2.reshape(len(frames2), -1),
        radius=radius,
        dist=pose_dist
    )
    return float(distance)


def compute_weighted_dtw(
    frames1: np.ndarray,
    frames2: np.ndarray,
    weights: JointWeights,
    backend: str = BACKEND_EXACT,
    radius: int = 1
) -> DTWResult:
    """
    Tính Weighted DTW giữa 2 chuỗi pose đã chuẩn hóa.

    Args:
        frames1: Array (m, NUM_JOINTS, 3).
        frames2: Array (n, NUM_JOINTS, 3).
        weights: Trọng số khớp.
        backend: "exact" (DTW cổ điển) hoặc "fast" (FastDTW xấp xỉ).
        radius: Bán kính tìm kiếm cho FastDTW.

    Returns:
        DTWResult: Kết quả phân tích.
    """
    m, n = len(frames1), len(frames2)
    if m == 0 or n == 0:
        raise InvalidInputError("DTW requires non-empty sequences")
    if weights.total <= 0:
        raise InvalidInputError("Sum of joint weights must be positive")

    mask = weights.active_mask
    if np.isnan(frames1[:, mask]).any() or np.isnan(frames2[:, mask]).any():
        raise InvalidInputError("Weighted joint missing from pose")

    if backend == BACKEND_EXACT:
        distance = _exact_weighted_dtw(frames1, frames2, weights)
    elif backend == BACKEND_FAST:
        distance = _fast_weighted_dtw(frames1, frames2, weights, radius)
    else:
        raise InvalidInputError(f"Unknown DTW backend: {backend}")

    return DTWResult(
        distance=distance,
        normalized_distance=distance / max(m, n),
        length1=m,
        length2=n,
        backend=backend
    )
