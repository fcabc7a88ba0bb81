# -*- coding: utf-8 -*-
"""监控管理器 (MonitoringManager) 的主实现文件。

包含 MonitoringManager 类，负责评测引擎的可观测性：
结构化 JSON 日志（支持按大小或时间轮转）、可选的 Prometheus 指标导出、
可选的 OpenTelemetry 分布式追踪，以及评分/反馈等审计事件记录。
"""
import json
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from assessment_engine.config_manager.config_manager import ConfigManager


class StructuredJsonFormatter(logging.Formatter):
    """
    自定义 Formatter 以输出 JSON 格式的日志。
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineno": record.lineno,
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        context = getattr(record, "context", None)
        if context:
            if isinstance(context, dict):
                log_record.update(context)
            else:
                log_record["context"] = str(context)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class MonitoringManager:
    """
    统一管理评测引擎的日志、性能指标、追踪与审计事件。
    """

    def __init__(self, config_manager: ConfigManager):
        """
        初始化 MonitoringManager。

        Args:
            config_manager: ConfigManager 实例，用于获取 monitoring.* 配置。
        """
        self.config_manager = config_manager
        self.logger = logging.getLogger(__name__)
        self.metrics: Dict[str, Any] = {}  # Prometheus 指标对象缓存
        self.tracer = None

        self._setup_logging()
        self._setup_prometheus()
        self._setup_opentelemetry()

        self.logger.info("MonitoringManager initialized.")

    def _setup_logging(self):
        """
        根据配置设置日志记录器。
        """
        log_enabled = self.config_manager.get_config("monitoring.logging.enabled", True)
        log_level_str = self.config_manager.get_config("monitoring.logging.level", "INFO")
        log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)

        self.logger.setLevel(log_level)
        # 不向根 logger 传播，避免与应用级日志配置重复输出
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)

        if not log_enabled:
            self.logger.addHandler(logging.NullHandler())
            return

        log_filepath = Path(
            self.config_manager.get_config(
                "monitoring.logging.filepath", "logs/assessment_engine.log"
            )
        )
        structured_json = self.config_manager.get_config(
            "monitoring.logging.structured_json", True
        )
        rotation_config = self.config_manager.get_config("monitoring.logging.rotation", {})
        if not isinstance(rotation_config, dict):
            rotation_config = {}

        log_filepath.parent.mkdir(parents=True, exist_ok=True)

        handler: Union[
            logging.handlers.RotatingFileHandler,
            logging.handlers.TimedRotatingFileHandler,
            logging.FileHandler,
        ]
        rotation_type = str(rotation_config.get("type", "size")).lower()
        if rotation_type == "size":
            handler = logging.handlers.RotatingFileHandler(
                log_filepath,
                maxBytes=rotation_config.get("max_bytes", 1024 * 1024 * 10),  # 10MB
                backupCount=rotation_config.get("backup_count", 5),
                encoding="utf-8",
            )
        elif rotation_type == "time":
            handler = logging.handlers.TimedRotatingFileHandler(
                log_filepath,
                when=rotation_config.get("when", "D"),
                interval=rotation_config.get("interval", 1),
                backupCount=rotation_config.get("backup_count", 7),
                encoding="utf-8",
            )
        else:
            handler = logging.FileHandler(log_filepath, encoding="utf-8")

        if structured_json:
            handler.setFormatter(StructuredJsonFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        self.logger.addHandler(handler)

        self.logger.info(
            f"MonitoringManager file logging setup complete. Level: {log_level_str}, Path: {log_filepath}, Structured: {structured_json}, Rotation: {rotation_type}"
        )

    def _log(
        self,
        level: int,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        exc_info=None,
        **kwargs,
    ):
        """通用日志记录方法，context 与 kwargs 合并后作为结构化字段输出。"""
        extra_info = {}
        if context:
            extra_info.update(context)
        if kwargs:
            extra_info.update(kwargs)

        if extra_info:
            self.logger.log(level, message, exc_info=exc_info, extra={"context": extra_info})
        else:
            self.logger.log(level, message, exc_info=exc_info)

    def log_debug(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """记录调试级别日志。"""
        self._log(logging.DEBUG, message, context, **kwargs)

    def log_info(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """记录信息级别日志。"""
        self._log(logging.INFO, message, context, **kwargs)

    def log_warning(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """记录警告级别日志。"""
        self._log(logging.WARNING, message, context, **kwargs)

    def log_error(
        self, message: str, context: Optional[Dict[str, Any]] = None, exc_info=None, **kwargs
    ):
        """记录错误级别日志。exc_info=True 时附带当前异常堆栈。"""
        self._log(logging.ERROR, message, context, exc_info=exc_info, **kwargs)

    def log_exception(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """记录异常信息（附带堆栈）。"""
        self._log(logging.ERROR, message, context, exc_info=True, **kwargs)

    def _setup_prometheus(self):
        """
        根据配置启动 Prometheus 指标导出端口。
        """
        if not self.config_manager.get_config("monitoring.prometheus.enabled", False):
            self.logger.info("Prometheus metrics export is disabled.")
            return

        from prometheus_client import start_http_server

        port = self.config_manager.get_config("monitoring.prometheus.port", 9091)
        try:
            start_http_server(port)
            self.logger.info(f"Prometheus metrics server started on port {port}.")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}", exc_info=True)

    def record_metric(
        self,
        metric_name: str,
        value: float,
        metric_type: str = "gauge",  # 'gauge', 'counter', 'histogram'
        tags: Optional[Dict[str, str]] = None,
        description: str = "",
    ):
        """
        记录性能指标。Prometheus 未启用时仅写入调试日志。
        """
        if not self.config_manager.get_config("monitoring.prometheus.enabled", False):
            self.log_debug(
                "Record metric (Prometheus disabled)",
                {"metric_name": metric_name, "value": value, "tags": tags, "type": metric_type},
            )
            return

        from prometheus_client import Counter, Gauge, Histogram

        # Prometheus 不允许指标名中出现 '.'
        prom_name = metric_name.replace(".", "_")
        label_names = sorted(tags.keys()) if tags else []
        metric_key = f"{prom_name}_{'_'.join(label_names)}"

        if metric_key not in self.metrics:
            actual_description = description or f"{metric_type.capitalize()} metric: {metric_name}"
            if metric_type.lower() == "counter":
                self.metrics[metric_key] = Counter(prom_name, actual_description, label_names)
            elif metric_type.lower() == "histogram":
                buckets = self.config_manager.get_config(
                    f"monitoring.prometheus.metrics.{prom_name}.buckets"
                )
                if buckets:
                    self.metrics[metric_key] = Histogram(
                        prom_name, actual_description, label_names, buckets=tuple(buckets)
                    )
                else:
                    self.metrics[metric_key] = Histogram(prom_name, actual_description, label_names)
            else:
                self.metrics[metric_key] = Gauge(prom_name, actual_description, label_names)

        metric_obj = self.metrics[metric_key]
        if label_names:
            metric_obj = metric_obj.labels(**{k: str(tags[k]) for k in label_names})

        if metric_type.lower() == "counter":
            metric_obj.inc(value)
        elif metric_type.lower() == "histogram":
            metric_obj.observe(value)
        else:
            metric_obj.set(value)

    def _setup_opentelemetry(self):
        """
        根据配置设置 OpenTelemetry 分布式追踪。
        """
        if not self.config_manager.get_config("monitoring.opentelemetry.enabled", False):
            self.logger.info("OpenTelemetry tracing is disabled.")
            return

        from opentelemetry import trace
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

        service_name = self.config_manager.get_config(
            "monitoring.opentelemetry.service_name", "AssessmentEngine"
        )
        exporter_type = str(
            self.config_manager.get_config("monitoring.opentelemetry.exporter_type", "console")
        ).lower()

        provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))

        otlp_endpoint = self.config_manager.get_config("monitoring.opentelemetry.otlp_endpoint")
        if exporter_type == "otlp_http" and otlp_endpoint:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

            exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        else:
            if exporter_type != "console":
                self.logger.warning(
                    f"OpenTelemetry exporter '{exporter_type}' unavailable or missing endpoint. Using console exporter."
                )
            exporter = ConsoleSpanExporter()

        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
        self.tracer = trace.get_tracer(__name__)
        self.logger.info(
            f"OpenTelemetry tracing initialized. Service: {service_name}, Exporter: {exporter_type}"
        )

    def start_span(self, span_name: str, attributes: Optional[Dict[str, Any]] = None):
        """
        开始一个新的追踪 Span。追踪未启用时返回 None。
        """
        if not self.tracer:
            return None
        return self.tracer.start_span(span_name, attributes=attributes)

    def end_span(self, span: Optional[Any], exc: Optional[Exception] = None):
        """
        结束一个追踪 Span，可选记录异常。
        """
        if not span:
            return

        from opentelemetry import trace

        if exc:
            span.record_exception(exc)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(exc)))
        else:
            span.set_status(trace.Status(trace.StatusCode.OK))
        span.end()

    def log_audit_event(self, event_type: str, user_id: Optional[str], details: Dict[str, Any]):
        """
        记录审计事件（如试卷评分、教师反馈），以结构化 INFO 日志输出。
        """
        audit_data = {
            "event_type": event_type,
            "user_id": user_id,
            "details": details,
            "timestamp_iso": time.strftime("%Y-%m-%dT%H:%M:%S%z", time.gmtime(time.time())),
        }
        self.log_info(f"Audit Event: {event_type}", context=audit_data)
