# apps/tasks/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('', views.task_collection_view, name='task_collection'),            # /api/tasks/
    path('batch/', views.task_batch_view, name='task_batch'),
    path('bulk-upload/', views.task_bulk_upload_view, name='task_bulk_upload'),
    path('bulk/', views.task_bulk_delete_view, name='task_bulk_delete'),
    path('follow-up/', views.follow_up_list_view, name='follow_up_list'),
    path('<int:pk>/', views.task_detail_view, name='task_detail'),
    path('<int:pk>/confirm/', views.follow_up_confirm_view, name='follow_up_confirm'),
    path('<int:pk>/reject/', views.follow_up_reject_view, name='follow_up_reject'),
    path('<int:pk>/follow-up-status/', views.follow_up_status_view, name='follow_up_status'),
]
