from django.urls import path
from . import views

app_name = 'gradebook'

urlpatterns = [
    # Report generation
    path('reports/generate/', views.generate_report, name='generate_report'),
    path('reports/generate-class/', views.generate_class, name='generate_class'),
    path('reports/rank/', views.rank, name='rank_class'),

    # Report reads
    path('reports/class/<int:class_id>/<int:term_id>/', views.class_reports, name='class_reports'),
    path('reports/<int:student_id>/<int:term_id>/', views.report_detail, name='report_detail'),

    # Staff remarks
    path('reports/<int:student_id>/<int:term_id>/remarks/', views.update_remarks, name='update_remarks'),
]
