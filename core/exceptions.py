"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理
"""


class RoomingException(Exception):
    """所有業務異常的基類"""
    pass


# ============ Not Found ============

class NotFound(RoomingException):
    """引用的實體不存在"""
    entity = "Entity"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class SheetNotFound(NotFound):
    entity = "Sheet"


class RoomNotFound(NotFound):
    entity = "Room"


class MembershipNotFound(NotFound):
    entity = "Member"


class UserNotFound(NotFound):
    entity = "User"


# ============ Membership 相關異常 ============

class CapacityExceeded(RoomingException):
    """房間已滿（或容量不可低於目前人數）"""
    pass


class DuplicateMembership(RoomingException):
    """同一個使用者在同一個房間已經有成員資格"""
    pass


class CrossSheetMove(RoomingException):
    """不可在不同 Sheet 之間移動成員"""
    pass


class GenderMismatch(RoomingException):
    """不可在不同性別的房間之間移動成員"""
    pass


class ConcurrentUpdate(RoomingException):
    """資料在讀取與鎖定之間被其他請求修改（呼叫者可以重試）"""
    pass


# ============ 管理操作相關異常 ============

class ConflictingUniqueField(RoomingException):
    """唯一欄位衝突（例如重複的 Sheet 名稱）"""
    pass


class HasDependents(RoomingException):
    """仍有下層資料，不可刪除"""
    pass


class InvalidAccessCode(RoomingException):
    """Sheet 存取代碼錯誤或未提供"""
    pass
