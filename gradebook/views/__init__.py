from .reports import (
    generate_report,
    generate_class,
    rank,
    report_detail,
    class_reports,
    update_remarks,
)
