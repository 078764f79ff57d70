from django.urls import path

from noc import views

urlpatterns = [
    path('', views.noc_list, name='noc_list'),
    path('<str:noc_id>/', views.noc_detail, name='noc_detail'),
    path('<str:noc_id>/pdf/', views.noc_pdf, name='noc_pdf'),
]
