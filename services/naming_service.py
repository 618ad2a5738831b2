"""
命名服務：生成 Sheet 存取代碼

純計算邏輯，不涉及狀態轉換
"""
import random
import string

CODE_PREFIX = "SDC"


def generate_sheet_code() -> str:
    """
    生成 Sheet 存取代碼

    格式：SDC-NNNN
    範例：SDC-4376, SDC-0912

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 10^4 種可能，呼叫者必須處理碰撞
    """
    digits = ''.join(random.choices(string.digits, k=4))
    return f"{CODE_PREFIX}-{digits}"


def normalize_code(code: str) -> str:
    """使用者輸入的代碼：去掉空白、轉大寫"""
    return code.strip().upper()
