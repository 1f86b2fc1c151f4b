"""리소스 파일(YAML) 로더 유틸리티"""
import os
from functools import lru_cache
from typing import Any, Dict

import yaml

from setup_finder.core.logging import logger


def get_resource_path(relative_path: str) -> str:
    """패키지 resources/ 기준 리소스 절대 경로 반환"""
    # setup_finder/utils/resource_loader.py -> setup_finder/utils -> setup_finder
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, "resources", relative_path)


@lru_cache(maxsize=32)
def load_yaml_resource(relative_path: str) -> Dict[str, Any]:
    """YAML 리소스 로드 및 캐싱"""
    path = get_resource_path(relative_path)
    if not os.path.exists(path):
        logger.warning(f"Resource not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load YAML resource {path}: {e}")
        return {}


def load_setup_templates() -> Dict[str, Any]:
    """도메인별 셋업 템플릿 로드 (gaming/office/bedroom/...)"""
    data = load_yaml_resource("templates.yaml")
    return data.get("templates", {})


def load_ghost_tips() -> list[str]:
    """성공 빌드에 쓰는 Ghost Tip 목록 로드"""
    data = load_yaml_resource("templates.yaml")
    return list(data.get("ghost_tips", []))
