"""项目内使用的自定义异常定义。"""


class PrintMosaicError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(PrintMosaicError):
    """配置不合法时抛出。"""


class InvalidDimensions(PrintMosaicError):
    """几何计算的输入尺寸非法（非正数或非有限值）。"""


class UnsupportedMediaType(PrintMosaicError):
    """声明的媒体类型不是 image/*。"""


class ModeChangeRejected(PrintMosaicError):
    """队列非空时尝试切换单图/马赛克模式。"""


class UnknownItemError(PrintMosaicError):
    """队列中不存在指定的任务项。"""
