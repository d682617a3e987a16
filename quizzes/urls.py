from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .api.views import (
    CourseOfferingViewSet, QuizViewSet, QuestionViewSet, AttemptViewSet, AnswerViewSet,
)
from .api.auth_views import TokenLoginView

router = DefaultRouter()
router.register(r'offerings', CourseOfferingViewSet, basename='offering')
router.register(r'quizzes', QuizViewSet, basename='quiz')
router.register(r'questions', QuestionViewSet, basename='question')
router.register(r'attempts', AttemptViewSet, basename='attempt')
router.register(r'answers', AnswerViewSet, basename='answer')

urlpatterns = [
    path('auth/token/', TokenLoginView.as_view(), name='token-login'),
    path('', include(router.urls)),
]
