"""项目内使用的自定义异常定义。"""


class WatermarkError(Exception):
    """基础异常类型。"""


class ConfigValidationError(WatermarkError):
    """配置不合法时抛出。"""


class DirectoryError(WatermarkError):
    """输入目录无法遍历、没有可处理的图片或输出目录无法创建。"""
