from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    # Promotion
    path('promotion/candidates/', views.promotion_candidates, name='promotion_candidates'),
    path('promotion/process/', views.promotion_process, name='promotion_process'),
]
