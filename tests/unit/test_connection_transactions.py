"""Unit tests for the nested transaction counter."""
import pytest
from dbconn.connection import Connection
from dbconn.transaction import Transaction


@pytest.fixture
def handle(create_mock_handle):
    return create_mock_handle()


@pytest.fixture
def cn(handle):
    return Connection.from_handles(handle)


@pytest.mark.parametrize('depth', [1, 2, 5])
def test_balanced_begin_commit(cn, handle, depth):
    """N begins followed by N commits reach the server once each"""
    for _ in range(depth):
        cn.begin_transaction()
    assert cn.transaction_depth == depth

    for _ in range(depth):
        cn.commit()

    handle.begin.assert_called_once_with()
    handle.commit.assert_called_once_with()
    assert cn.transaction_depth == 0


def test_inner_commit_keeps_outer_open(cn, handle):
    cn.begin_transaction()
    cn.begin_transaction()
    cn.commit()

    handle.commit.assert_not_called()
    assert cn.transaction_depth == 1


@pytest.mark.parametrize('depth', [1, 3])
def test_rollback_unwinds_all_levels(cn, handle, depth):
    for _ in range(depth):
        cn.begin_transaction()

    cn.rollback()

    handle.rollback.assert_called_once_with()
    handle.commit.assert_not_called()
    assert cn.transaction_depth == 0


def test_commit_without_transaction_is_noop(cn, handle):
    cn.commit()
    handle.commit.assert_not_called()
    assert cn.transaction_depth == 0


def test_rollback_without_transaction_is_noop(cn, handle):
    cn.rollback()
    handle.rollback.assert_not_called()


def test_commit_after_rollback_is_noop(cn, handle):
    cn.begin_transaction()
    cn.begin_transaction()
    cn.rollback()
    cn.commit()
    cn.commit()

    handle.commit.assert_not_called()


def test_implicit_transaction_is_committed_before_begin(cn, handle):
    handle.in_transaction.return_value = True
    cn.begin_transaction()

    handle.commit.assert_called_once_with()
    handle.begin.assert_called_once_with()
    assert cn.transaction_depth == 1


def test_failed_begin_leaves_depth_unchanged(cn, handle):
    handle.begin.side_effect = RuntimeError('server gone')
    with pytest.raises(RuntimeError):
        cn.begin_transaction()
    assert cn.transaction_depth == 0


def test_in_transaction_delegates_to_handle(cn, handle):
    handle.in_transaction.return_value = True
    assert cn.in_transaction() is True
    assert cn.transaction_depth == 0

    cn.begin_transaction()
    handle.in_transaction.return_value = False
    assert cn.in_transaction() is False
    assert cn.transaction_depth == 1


class TestTransactionBlock:

    def test_commit_on_success(self, cn, handle):
        with cn.transaction() as tx:
            assert cn.transaction_depth == 1
            tx.execute('delete from t')

        handle.begin.assert_called_once_with()
        handle.commit.assert_called_once_with()
        handle.exec_driver_sql.assert_called_once_with('delete from t', None)
        assert cn.transaction_depth == 0

    def test_rollback_on_error(self, cn, handle):
        with pytest.raises(ValueError), Transaction(cn):
            raise ValueError('abort')

        handle.rollback.assert_called_once_with()
        handle.commit.assert_not_called()
        assert cn.transaction_depth == 0

    def test_nested_blocks_share_the_counter(self, cn, handle):
        with Transaction(cn):
            with Transaction(cn):
                assert cn.transaction_depth == 2
            handle.commit.assert_not_called()

        handle.begin.assert_called_once_with()
        handle.commit.assert_called_once_with()

    def test_inner_failure_rolls_back_everything(self, cn, handle):
        with Transaction(cn):
            with pytest.raises(ValueError), Transaction(cn):
                raise ValueError('abort')
            assert cn.transaction_depth == 0

        handle.rollback.assert_called_once_with()
        handle.commit.assert_not_called()
