from django.urls import path

from watermarks import views

urlpatterns = [
    path('', views.watermark_list, name='watermark_list'),
    path('active/', views.active_watermark, name='active_watermark'),
    path('deactivate-all/', views.deactivate_all, name='deactivate_all_watermarks'),
    path('<str:watermark_id>/', views.watermark_detail, name='watermark_detail'),
    path('<str:watermark_id>/activate/', views.activate, name='activate_watermark'),
]
