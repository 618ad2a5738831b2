"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Membership Manager：加入、移除、移動成員（容量與 isFull 一致性）
- Room / Sheet Manager：房間與 Sheet 的管理操作
- Notifier：變更事件的廣播介面
- Locks：並發控制工具
"""
