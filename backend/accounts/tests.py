from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from .models import User


class AuthFlowTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.driver = User.objects.create_user(
            username='driver_one',
            password='driver1234',
            role=User.Role.DRIVER,
        )

    def login(self, username='driver_one', password='driver1234'):
        return self.client.post(
            '/api/auth/login/',
            {'username': username, 'password': password},
            format='json',
        )

    def test_login_returns_tokens_with_role_claim(self):
        response = self.login()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['user']['role'], 'driver')

        access = AccessToken(response.data['tokens']['access'])
        self.assertEqual(access['role'], 'driver')

    def test_login_with_bad_password_fails(self):
        response = self.login(password='wrong')
        self.assertEqual(response.status_code, 400)

    def test_bearer_token_identifies_caller(self):
        access = self.login().data['tokens']['access']

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        me = self.client.get('/api/auth/me/')
        searching = self.client.get('/api/rides/searching/')

        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data['id'], self.driver.id)
        self.assertEqual(me.data['phone_number'], '')
        self.assertEqual(searching.status_code, 200)
        self.assertEqual(searching.data['count'], 0)

    def refresh(self, token):
        return self.client.post('/api/auth/refresh/', {'refresh': token}, format='json')

    def test_refresh_rotates_token_pair(self):
        old_refresh = self.login().data['tokens']['refresh']

        response = self.refresh(old_refresh)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(AccessToken(response.data['access'])['role'], 'driver')
        self.assertNotEqual(response.data['refresh'], old_refresh)

        reused = self.refresh(old_refresh)
        self.assertEqual(reused.status_code, 401)

    def test_refresh_rejects_garbage(self):
        self.assertEqual(self.refresh('nope').status_code, 401)
        self.assertEqual(
            self.client.post('/api/auth/refresh/', {}, format='json').status_code,
            400,
        )

    def test_logout_revokes_refresh_token(self):
        refresh = self.login().data['tokens']['refresh']

        response = self.client.post('/api/auth/logout/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, 200)

        self.assertEqual(self.refresh(refresh).status_code, 401)

    def test_role_is_a_closed_choice(self):
        self.assertEqual(set(User.Role.values), {'rider', 'driver'})
        self.assertTrue(self.driver.is_driver)
        self.assertFalse(self.driver.is_rider)
