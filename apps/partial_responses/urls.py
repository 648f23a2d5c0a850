from django.urls import path
from .views import (
    SavePartialView, ResumeByTokenView, ResumeByCodeView, CompletePartialView, SweepExpiredView
)

urlpatterns = [
    path("save/", SavePartialView.as_view(), name="partial-save"),
    path("resume/<str:token>/", ResumeByTokenView.as_view(), name="partial-resume"),
    path("resume-by-code/", ResumeByCodeView.as_view(), name="partial-resume-by-code"),
    path("sweep/", SweepExpiredView.as_view(), name="partial-sweep"),
    path("<str:token>/complete/", CompletePartialView.as_view(), name="partial-complete"),
]
