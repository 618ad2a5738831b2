"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- OccupancyService：isFull 的計算規則
- NamingService：Sheet 存取代碼生成
- AnalyticsService：佔用率統計
"""
