"""
API 層

FastAPI routers，只負責：
- Request 驗證（schemas）
- 呼叫 core 的 Manager
- 把業務異常轉成 HTTP status code
"""
