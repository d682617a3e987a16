"""
Management command to set up demo data for the University Quiz Engine.
Creates demo users, a course offering, and a published quiz with questions.
"""
from django.core.management.base import BaseCommand
from django.contrib.auth.models import User
from rest_framework.authtoken.models import Token
from quizzes.models import CourseOffering, Question, Quiz, UserProfile
from quizzes.services import QuizBuilder

DEMO_USERS = (
    ('student', 'student123', UserProfile.Role.STUDENT, {'first_name': 'Test', 'last_name': 'Student'}),
    ('instructor', 'instructor123', UserProfile.Role.INSTRUCTOR, {'first_name': 'Test', 'last_name': 'Instructor'}),
    ('admin', 'admin123', UserProfile.Role.ADMIN, {'is_staff': True, 'is_superuser': True}),
)

DEMO_QUIZ_TITLE = 'Python Basics Quiz'


class Command(BaseCommand):
    help = 'Set up demo data for testing'

    def handle(self, *args, **options):
        self.stdout.write(self.style.NOTICE('\nSetting up University Quiz Engine demo data...\n'))

        tokens = {}
        users = {}
        for username, password, role, extra in DEMO_USERS:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={'email': f'{username}@example.com', 'is_active': True, **extra}
            )
            if created:
                user.set_password(password)
                user.save()
                user.profile.role = role
                user.profile.save()
                self.stdout.write(self.style.SUCCESS(f'✓ Created {role}: {username} / {password}'))
            else:
                self.stdout.write(f'  {username} already exists')
            users[role] = user
            tokens[username] = Token.objects.get_or_create(user=user)[0].key

        offering, _ = CourseOffering.objects.get_or_create(
            code='CS101-2026A',
            defaults={
                'course_code': 'CS101',
                'course_name': 'Introduction to Python',
                'semester_name': '2026 First Semester',
            }
        )
        self.stdout.write(self.style.SUCCESS(f'✓ Offering: {offering}'))

        if Quiz.objects.active().filter(title=DEMO_QUIZ_TITLE, offering=offering).exists():
            self.stdout.write(f'  Quiz already exists: {DEMO_QUIZ_TITLE}')
        else:
            self._create_quiz(users[UserProfile.Role.INSTRUCTOR], offering)

        self.stdout.write(self.style.SUCCESS('\n' + '=' * 60))
        self.stdout.write(self.style.SUCCESS('Demo setup complete'))
        self.stdout.write(self.style.SUCCESS('=' * 60))

        self.stdout.write('\nAPI Tokens:')
        for username, key in tokens.items():
            self.stdout.write(f'  {username:<11} {key}')

        self.stdout.write('\nAPI Documentation:')
        self.stdout.write('  Swagger UI: http://localhost:8000/api/docs/')
        self.stdout.write('  ReDoc:      http://localhost:8000/api/redoc/')

        self.stdout.write('\nTest API:')
        self.stdout.write(f'  curl -H "Authorization: Token {tokens["student"]}" http://localhost:8000/api/quizzes/')
        self.stdout.write('')

    def _create_quiz(self, instructor, offering):
        quiz = QuizBuilder.create_quiz(
            instructor,
            title=DEMO_QUIZ_TITLE,
            description='Test your Python knowledge with this quiz',
            offering=offering,
            duration=30,
            passing_score=60,
        )
        QuizBuilder.add_question(
            instructor, quiz.id,
            question_type=Question.QuestionType.MULTIPLE_CHOICE,
            text='What is the output of print(type([]))?',
            points=2,
            options=[
                {'text': "<class 'list'>", 'is_correct': True},
                {'text': "<class 'tuple'>", 'is_correct': False},
                {'text': "<class 'dict'>", 'is_correct': False},
                {'text': "<class 'set'>", 'is_correct': False},
            ],
        )
        QuizBuilder.add_question(
            instructor, quiz.id,
            question_type=Question.QuestionType.TRUE_FALSE,
            text='Python is a statically typed programming language.',
            points=1,
            options=[
                {'text': 'True', 'is_correct': False},
                {'text': 'False', 'is_correct': True},
            ],
        )
        QuizBuilder.add_question(
            instructor, quiz.id,
            question_type=Question.QuestionType.SHORT_ANSWER,
            text='What is a Python decorator? Explain briefly.',
            points=3,
            explanation='A function that wraps another function to extend its behaviour.',
        )
        quiz = QuizBuilder.publish_quiz(instructor, quiz.id)
        self.stdout.write(self.style.SUCCESS(f'✓ Quiz: {quiz.title} ({quiz.total_points} points, published)'))
