"""외부 API 클라이언트 (curl_cffi 공유 세션, SerpAPI, Gemini)"""
