"""
佔用率服務：Room.isFull 的計算規則

純計算邏輯，不涉及資料庫

規則：
- isFull 是 (member_count, capacity) 的純函數：member_count >= capacity
- 加入成員只會把 isFull 設為 True（單調）
- 移除成員只會把 isFull 清為 False（單調）
"""


def is_at_capacity(member_count: int, capacity: int) -> bool:
    """
    房間是否已達容量

    範例：
        is_at_capacity(2, 2) -> True
        is_at_capacity(1, 2) -> False
    """
    return member_count >= capacity


def derive_is_full(member_count: int, capacity: int) -> bool:
    """建立房間或修改容量時，重新推導 isFull"""
    return is_at_capacity(member_count, capacity)


def should_mark_full(new_count: int, capacity: int) -> bool:
    """
    加入成員之後是否要把房間標成已滿

    只會回傳「要設為 True」，不會要求清除
    """
    return is_at_capacity(new_count, capacity)


def should_clear_full(is_full: bool, new_count: int, capacity: int) -> bool:
    """
    移除成員之後是否要清除已滿標記

    只有原本已滿且人數低於容量才清除
    """
    return is_full and not is_at_capacity(new_count, capacity)
