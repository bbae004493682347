import os
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import field_validator

project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
env_path = os.path.join(project_root, '.env')
load_dotenv(env_path)


class Settings(BaseSettings):
    # 基本设置
    PROJECT_NAME: str = "cos-storage"

    # 腾讯云COS配置
    COS_BUCKET: str = os.getenv("COS_BUCKET", "")
    COS_APP_ID: str = os.getenv("COS_APP_ID", "")
    COS_REGION: str = os.getenv("COS_REGION", "ap-guangzhou")
    COS_SECRET_ID: str = os.getenv("COS_SECRET_ID", "")
    COS_SECRET_KEY: str = os.getenv("COS_SECRET_KEY", "")
    COS_TOKEN: Optional[str] = os.getenv("COS_TOKEN", None)

    # CDN域名，为空时通过签名URL访问
    COS_CDN: Optional[str] = os.getenv("COS_CDN", None)
    COS_SCHEME: str = os.getenv("COS_SCHEME", "http")
    COS_READ_FROM_CDN: bool = False
    COS_ENCRYPT: bool = False

    # HTTP超时（秒）
    COS_TIMEOUT: int = int(os.getenv("COS_TIMEOUT", 60))
    COS_CONNECT_TIMEOUT: int = int(os.getenv("COS_CONNECT_TIMEOUT", 60))

    # 为True时保持旧版“吞掉异常”的返回值，否则统一返回OperationResult
    COS_LEGACY_ERRORS: bool = True

    # 日志配置
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR", None)

    @field_validator("COS_SCHEME", mode="before")
    @classmethod
    def normalize_scheme(cls, v: str) -> str:
        v = (v or "http").strip().lower()
        if v not in ("http", "https"):
            raise ValueError(f"不支持的协议: {v}")
        return v

    @field_validator("COS_CDN", "COS_TOKEN", mode="before")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        # 环境变量中的空字符串视为未配置
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def COS_CONFIG(self) -> dict:
        """
        获取适配器配置（flysystem风格的键名）
        """
        return {
            "bucket": self.COS_BUCKET,
            "region": self.COS_REGION,
            "credentials": {
                "appId": self.COS_APP_ID,
                "secretId": self.COS_SECRET_ID,
                "secretKey": self.COS_SECRET_KEY,
                "token": self.COS_TOKEN,
            },
            "cdn": self.COS_CDN,
            "scheme": self.COS_SCHEME,
            "read_from_cdn": self.COS_READ_FROM_CDN,
            "encrypt": self.COS_ENCRYPT,
            "timeout": self.COS_TIMEOUT,
            "connect_timeout": self.COS_CONNECT_TIMEOUT,
            "legacy_errors": self.COS_LEGACY_ERRORS,
        }

    class Config:
        case_sensitive = True
        env_file = ".env"


# 创建设置实例
settings = Settings()
